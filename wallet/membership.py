import logging
from decimal import Decimal
from typing import Optional

from .cache import WalletCache
from .exceptions import GatewayError
from .gateway import USER_STATE, LedgerGateway, eq
from .identity import IdentityProvider
from .models import Level, MembershipSnapshot, TierRule
from .referrals import ReferralTreeReader

logger = logging.getLogger(__name__)

LEVEL_ORDER = [level.value for level in Level]

# mirrors the ledger's level rules; used only for display-side comparisons
RULES_BY_LEVEL: dict[str, TierRule] = {
    "V1": TierRule(min_balance=Decimal("50"), min_users=0),
    "V2": TierRule(min_balance=Decimal("500"), min_users=5),
    "V3": TierRule(min_balance=Decimal("3000"), min_users=10),
    "V4": TierRule(min_balance=Decimal("10000"), min_users=30),
    "V5": TierRule(min_balance=Decimal("30000"), min_users=50),
    "V6": TierRule(min_balance=Decimal("100000"), min_users=75),
}


def next_level(current: str) -> Optional[str]:
    """Level after `current`, or None at the top or for an unknown level."""
    try:
        idx = LEVEL_ORDER.index(current)
    except ValueError:
        return None
    if idx < len(LEVEL_ORDER) - 1:
        return LEVEL_ORDER[idx + 1]
    return None


class MembershipResolver:
    """
    Assembles the VIP view from the ledger's user_state row, a fresh wallet
    read and the referral tree. It reports the rule table alongside the
    computed fields but does not decide whether a user qualifies.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        identity: IdentityProvider,
        cache: WalletCache,
        referrals: ReferralTreeReader,
    ):
        self.gateway = gateway
        self.identity = identity
        self.cache = cache
        self.referrals = referrals

    async def get_vip_info(self) -> MembershipSnapshot:
        user = self.identity.current_user()
        if not user or not user.id:
            return MembershipSnapshot()

        state = await self._load_user_state(user.id)
        wallet = await self.cache.get_async()
        team = await self.referrals.get_team_summary()
        effective_users = sum(1 for m in team if m.depth >= 1)

        current = str(state.get("current_level") or Level.V0.value)
        return MembershipSnapshot(
            current_level=current,
            next_level=next_level(current),
            is_activated=bool(state.get("is_activated")),
            is_funded=bool(state.get("is_funded")),
            is_locked=bool(state.get("is_locked")),
            balance=wallet.balance,
            effective_users=effective_users,
            rules_by_level=dict(RULES_BY_LEVEL),
        )

    async def _load_user_state(self, user_id: str) -> dict:
        try:
            rows = await self.gateway.select(
                USER_STATE,
                columns="current_level,is_activated,is_funded,is_locked",
                filters={"user_id": eq(user_id)},
                limit=1,
            )
        except GatewayError as e:
            logger.debug("user_state lookup failed, using defaults: %s", e)
            return {}
        return rows[0] if rows else {}
