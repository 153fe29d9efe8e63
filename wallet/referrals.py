import logging

from pydantic import ValidationError

from .exceptions import GatewayError
from .gateway import INVITE_EDGES, LedgerGateway, eq, lt
from .identity import IdentityProvider
from .models import TeamMember

logger = logging.getLogger(__name__)

MAX_DEPTH = 3


class ReferralTreeReader:
    def __init__(self, gateway: LedgerGateway, identity: IdentityProvider):
        self.gateway = gateway
        self.identity = identity

    async def get_team_summary(self) -> list[TeamMember]:
        """Referrals up to three levels below the current user, flattened."""
        user = self.identity.current_user()
        if not user or not user.id:
            return []
        try:
            rows = await self.gateway.select(
                INVITE_EDGES,
                columns="descendant_id,depth",
                filters={"ancestor_id": eq(user.id), "depth": lt(MAX_DEPTH + 1)},
            )
        except GatewayError as e:
            logger.debug("Team summary unavailable: %s", e)
            return []

        members = []
        for row in rows:
            try:
                member = TeamMember(id=row.get("descendant_id"), depth=row.get("depth"))
            except ValidationError:
                logger.debug("Skipping malformed invite edge %r", row)
                continue
            if member.depth <= MAX_DEPTH:
                members.append(member)
        return members
