import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from .background import BackgroundTasks
from .exceptions import GatewayError
from .gateway import WALLET_BALANCES, WITHDRAW_REQUESTS, LedgerGateway, eq
from .identity import IdentityProvider
from .models import (
    ZERO,
    BalancePatch,
    Currency,
    Network,
    WalletState,
    WithdrawRequest,
    WithdrawResult,
    to_decimal,
)
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

INCOME_KEY = "aiIncome"
WITHDRAW_FEE_RATE = Decimal("0.05")


class WalletCache:
    """
    Optimistic in-memory copy of the user's wallet row.

    `balance` and `reserved` are overwritten wholesale by `refresh`;
    local deposits and withdrawals change them immediately and mirror the
    new absolute balance to the ledger in the background. Nothing here is
    locked: a refresh that lands after an optimistic change will replace
    it with whatever the ledger held at read time.
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        identity: IdentityProvider,
        store: KeyValueStore,
        background: Optional[BackgroundTasks] = None,
    ):
        self.gateway = gateway
        self.identity = identity
        self.store = store
        self.background = background or BackgroundTasks()
        self.state = WalletState(total_income=self._load_income())

    def _load_income(self) -> Decimal:
        try:
            stored = self.store.get(INCOME_KEY)
        except OSError as e:
            logger.warning("Could not read %s from local store: %s", INCOME_KEY, e)
            return ZERO
        income = to_decimal(stored)
        return income if income is not None and income >= 0 else ZERO

    def _user_id(self) -> Optional[str]:
        user = self.identity.current_user()
        return user.id if user and user.id else None

    async def refresh(self) -> None:
        user_id = self._user_id()
        if not user_id:
            return
        try:
            rows = await self.gateway.select(
                WALLET_BALANCES,
                columns="usdt_balance,usdt_reserved",
                filters={"user_id": eq(user_id)},
                limit=1,
            )
        except GatewayError as e:
            logger.debug("Wallet refresh failed, keeping cached values: %s", e)
            return
        if not rows:
            return
        row = rows[0]
        balance = to_decimal(row.get("usdt_balance"))
        reserved = to_decimal(row.get("usdt_reserved"))
        if balance is not None:
            self.state.balance = balance
        if reserved is not None:
            self.state.reserved = reserved

    def clear_balances(self) -> None:
        """Forget the previous user's funds. Income is a device-wide counter and stays."""
        self.state.balance = ZERO
        self.state.reserved = ZERO

    def get_sync(self) -> WalletState:
        return self.state.model_copy()

    async def get_async(self) -> WalletState:
        await self.refresh()
        return self.get_sync()

    def record_deposit(self, amount) -> None:
        amt = to_decimal(amount)
        if amt is None or amt <= 0:
            return
        self.state.balance += amt
        user_id = self._user_id()
        if not user_id:
            return
        self._mirror_balance(user_id, "deposit balance write")

    def withdraw(self, amount) -> Optional[WithdrawResult]:
        amt = to_decimal(amount)
        if amt is None or amt <= 0:
            return None
        if self.state.balance < amt:
            return None
        fee = amt * WITHDRAW_FEE_RATE
        # the fee is reported to the ledger but not deducted locally
        self.state.balance -= amt
        user_id = self._user_id()
        if user_id:
            self._mirror_balance(user_id, "withdraw balance write")
            request = WithdrawRequest(
                user_id=user_id,
                currency=Currency.USDT.value,
                network=Network.TRC20.value,
                to_address="",
                address="",
                amount=amt,
                fee=fee,
            )
            self.background.spawn(
                "withdraw request",
                self.gateway.insert(WITHDRAW_REQUESTS, request.model_dump(mode="json")),
            )
        return WithdrawResult(balance=self.state.balance, total_income=self.state.total_income)

    def add_income(self, n=1) -> Decimal:
        inc = to_decimal(n)
        if inc is None or inc <= 0:
            inc = Decimal("1")
        self.state.total_income += inc
        try:
            self.store.set(INCOME_KEY, str(self.state.total_income))
        except OSError as e:
            logger.warning("Could not persist %s: %s", INCOME_KEY, e)
        return self.state.total_income

    def _mirror_balance(self, user_id: str, operation: str) -> None:
        patch = BalancePatch(usdt_balance=self.state.balance, updated_at=datetime.now(timezone.utc))
        self.background.spawn(
            operation,
            self.gateway.patch(
                WALLET_BALANCES, {"user_id": eq(user_id)}, patch.model_dump(mode="json"),
            ),
        )
