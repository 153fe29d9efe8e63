"""
Optimistic Wallet Client

This package provides:
- A cached wallet view (balance, reserved, lifetime income) kept in step
  with the remote ledger
- Optimistic deposits and withdrawals mirrored to the ledger in the background
- VIP level snapshot and referral team summary
- Payout address management and withdrawal requests
"""

from .models import (
    Identity,
    WalletState,
    WithdrawResult,
    TeamMember,
    TierRule,
    MembershipSnapshot,
    PayoutAddress,
    WithdrawRequest,
)
from .exceptions import (
    WalletError,
    ConfigurationError,
    GatewayError,
    GatewayTransportError,
    UnauthenticatedError,
    RemoteRejectedError,
)
from .service import WalletService

__all__ = [
    "Identity",
    "WalletState",
    "WithdrawResult",
    "TeamMember",
    "TierRule",
    "MembershipSnapshot",
    "PayoutAddress",
    "WithdrawRequest",
    "WalletError",
    "ConfigurationError",
    "GatewayError",
    "GatewayTransportError",
    "UnauthenticatedError",
    "RemoteRejectedError",
    "WalletService",
]
