import logging
from decimal import Decimal
from typing import Optional

from .background import BackgroundTasks
from .exceptions import GatewayError, RemoteRejectedError, UnauthenticatedError
from .gateway import DEPOSIT_LEDGER, PAYOUT_ADDRESSES, WITHDRAW_REQUESTS, LedgerGateway, eq
from .identity import IdentityProvider
from .models import (
    ZERO,
    Currency,
    DepositLedgerEntry,
    Network,
    PayoutAddress,
    WithdrawRequest,
    from_remote,
    to_decimal,
)

logger = logging.getLogger(__name__)


class PayoutWorkflow:
    def __init__(
        self,
        gateway: LedgerGateway,
        identity: IdentityProvider,
        background: Optional[BackgroundTasks] = None,
    ):
        self.gateway = gateway
        self.identity = identity
        self.background = background or BackgroundTasks()

    def _user_id(self) -> Optional[str]:
        user = self.identity.current_user()
        return user.id if user and user.id else None

    def _require_user_id(self) -> str:
        user_id = self._user_id()
        if not user_id:
            raise UnauthenticatedError()
        return user_id

    async def list_payout_addresses(self) -> list[PayoutAddress]:
        user_id = self._user_id()
        if not user_id:
            return []
        try:
            rows = await self.gateway.select(
                PAYOUT_ADDRESSES,
                columns="currency,network,address,is_locked,locked_at",
                filters={"user_id": eq(user_id)},
            )
        except GatewayError as e:
            logger.debug("Payout address listing failed: %s", e)
            return []
        return [from_remote(PayoutAddress, row) for row in rows]

    async def add_payout_address(self, currency: str, network: str, address: str) -> Optional[PayoutAddress]:
        user_id = self._require_user_id()
        payload = {
            "user_id": user_id,
            "currency": str(currency or "").lower(),
            "network": str(network or "").lower(),
            "address": str(address or ""),
        }
        try:
            row = await self.gateway.insert(PAYOUT_ADDRESSES, payload)
        except GatewayError as e:
            raise RemoteRejectedError(e.body or "Failed to add address") from e
        return from_remote(PayoutAddress, row) if row else None

    async def request_withdraw(
        self,
        currency: str,
        network: str,
        address: str,
        amount,
        fee=None,
    ) -> Optional[WithdrawRequest]:
        """
        Ask the ledger for a payout. Unlike `WalletCache.withdraw` this does
        not touch the cached balance and charges whatever fee the caller
        passes (0 when omitted).
        """
        user_id = self._require_user_id()
        request = WithdrawRequest(
            user_id=user_id,
            currency=str(currency or "").lower(),
            network=str(network or "").lower(),
            address=str(address or ""),
            to_address=str(address or ""),
            amount=self._amount(amount),
            fee=self._amount(fee) if fee is not None else ZERO,
        )
        try:
            row = await self.gateway.insert(WITHDRAW_REQUESTS, request.model_dump(mode="json"))
        except GatewayError as e:
            raise RemoteRejectedError(e.body or "Withdrawal failed") from e
        return from_remote(WithdrawRequest, row) if row else None

    def submit_deposit_tx(
        self,
        tx_hash: str,
        network: str = Network.BEP20.value,
        currency: str = Currency.USDT.value,
    ) -> None:
        """Report a deposit transaction hash. Records it with amount 0; nothing is credited."""
        user_id = self._user_id()
        if not user_id or not tx_hash:
            return
        entry = DepositLedgerEntry(
            user_id=user_id,
            payment_id=tx_hash,
            currency=str(currency or Currency.USDT.value).lower(),
            network=str(network or Network.BEP20.value).lower(),
        )
        self.background.spawn(
            "deposit tx record",
            self.gateway.insert(DEPOSIT_LEDGER, entry.model_dump(mode="json")),
        )

    @staticmethod
    def _amount(value) -> Decimal:
        amount = to_decimal(value)
        if amount is None:
            raise ValueError(f"Invalid amount: {value!r}")
        return amount
