import logging
from decimal import Decimal
from typing import Optional

import httpx

from .background import BackgroundTasks, ErrorCallback
from .cache import WalletCache
from .config import Settings
from .exceptions import ConfigurationError
from .gateway import LedgerGateway
from .identity import IdentityProvider, StoreIdentityProvider
from .membership import MembershipResolver
from .models import (
    Currency,
    Identity,
    MembershipSnapshot,
    Network,
    PayoutAddress,
    TeamMember,
    WalletState,
    WithdrawRequest,
    WithdrawResult,
)
from .payouts import PayoutWorkflow
from .referrals import ReferralTreeReader
from .storage import JsonFileStore, KeyValueStore

logger = logging.getLogger(__name__)


class WalletService:
    """
    One wallet session: a single cache plus the readers and workflows that
    share it. Build one per logged-in client and call `start()` once.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        identity: IdentityProvider,
        store: KeyValueStore,
        on_error: Optional[ErrorCallback] = None,
    ):
        self.gateway = gateway
        self.identity = identity
        self.store = store
        self.background = BackgroundTasks(on_error=on_error)
        self.cache = WalletCache(gateway, identity, store, self.background)
        self.referrals = ReferralTreeReader(gateway, identity)
        self.membership = MembershipResolver(gateway, identity, self.cache, self.referrals)
        self.payouts = PayoutWorkflow(gateway, identity, self.background)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> "WalletService":
        store = JsonFileStore(settings.store_path)
        return cls(
            LedgerGateway.from_settings(settings, transport=transport),
            StoreIdentityProvider(store),
            store,
            on_error=on_error,
        )

    async def start(self) -> WalletState:
        user = self.identity.current_user()
        logger.info("Starting wallet session for %s", user.id if user else "anonymous user")
        await self.cache.refresh()
        return self.cache.get_sync()

    async def close(self) -> None:
        await self.background.drain()
        await self.gateway.aclose()

    def get_user(self) -> Identity:
        return self.identity.current_user() or Identity()

    # -- session --

    def _session(self) -> StoreIdentityProvider:
        if not isinstance(self.identity, StoreIdentityProvider):
            raise ConfigurationError("Session is managed externally")
        return self.identity

    async def login(self, user_id: str, phone: Optional[str] = None) -> Identity:
        user = self._session().login(user_id, phone)
        self.cache.clear_balances()
        await self.cache.refresh()
        logger.info("Logged in as %s", user.id)
        return user

    def logout(self) -> None:
        self._session().logout()
        self.cache.clear_balances()

    # -- wallet --

    def get_wallet(self) -> WalletState:
        return self.cache.get_sync()

    async def get_wallet_async(self) -> WalletState:
        return await self.cache.get_async()

    def record_deposit(self, amount) -> None:
        self.cache.record_deposit(amount)

    def withdraw(self, amount) -> Optional[WithdrawResult]:
        return self.cache.withdraw(amount)

    def add_income(self, n=1) -> Decimal:
        return self.cache.add_income(n)

    # -- membership and team --

    async def get_vip_info(self) -> MembershipSnapshot:
        return await self.membership.get_vip_info()

    async def get_team_summary(self) -> list[TeamMember]:
        return await self.referrals.get_team_summary()

    # -- payouts --

    async def list_payout_addresses(self) -> list[PayoutAddress]:
        return await self.payouts.list_payout_addresses()

    async def add_payout_address(self, currency: str, network: str, address: str) -> Optional[PayoutAddress]:
        return await self.payouts.add_payout_address(currency, network, address)

    async def request_withdraw(self, currency: str, network: str, address: str, amount, fee=None) -> Optional[WithdrawRequest]:
        return await self.payouts.request_withdraw(currency, network, address, amount, fee)

    def submit_deposit_tx(self, tx_hash: str, network: str = Network.BEP20.value, currency: str = Currency.USDT.value) -> None:
        self.payouts.submit_deposit_tx(tx_hash, network, currency)
