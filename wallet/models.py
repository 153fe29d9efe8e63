from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel


ZERO = Decimal("0")


class Currency(str, Enum):
    USDT = "usdt"
    USDC = "usdc"


class Network(str, Enum):
    TRC20 = "trc20"
    BEP20 = "bep20"
    ERC20 = "erc20"


class Level(str, Enum):
    V0 = "V0"
    V1 = "V1"
    V2 = "V2"
    V3 = "V3"
    V4 = "V4"
    V5 = "V5"
    V6 = "V6"


class Identity(BaseModel):
    id: Optional[str] = None
    phone: Optional[str] = None


class WalletState(BaseModel):
    balance: Decimal = ZERO
    reserved: Decimal = ZERO
    total_income: Decimal = ZERO

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WithdrawResult(BaseModel):
    balance: Decimal
    total_income: Decimal

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TeamMember(BaseModel):
    id: str
    depth: int = Field(..., ge=1)


class TierRule(BaseModel):
    min_balance: Decimal
    min_users: int

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class MembershipSnapshot(BaseModel):
    current_level: str = Level.V0.value
    next_level: Optional[str] = None
    is_activated: bool = False
    is_funded: bool = False
    is_locked: bool = False
    balance: Decimal = ZERO
    effective_users: int = 0
    rules_by_level: dict[str, TierRule] = Field(default_factory=dict)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PayoutAddress(BaseModel):
    currency: Optional[str] = None
    network: Optional[str] = None
    address: Optional[str] = None
    is_locked: bool = False
    locked_at: Optional[datetime] = None

    # rows are owned by the remote ledger; keep whatever else it sends
    model_config = ConfigDict(extra="allow")

    @field_validator("is_locked", mode="before")
    @classmethod
    def _null_is_unlocked(cls, value):
        return False if value is None else value


class WithdrawRequest(BaseModel):
    user_id: Optional[str] = None
    currency: Optional[str] = None
    network: Optional[str] = None
    address: Optional[str] = ""
    to_address: Optional[str] = ""
    amount: Optional[Decimal] = None
    fee: Optional[Decimal] = ZERO

    # also parses rows echoed back by the ledger, which may carry nulls
    model_config = ConfigDict(extra="allow")


class DepositLedgerEntry(BaseModel):
    user_id: str
    provider: str = "manual"
    payment_id: str
    currency: str = Currency.USDT.value
    network: str = Network.BEP20.value
    amount: Decimal = ZERO
    status: str = "confirmed"


class BalancePatch(BaseModel):
    usdt_balance: Decimal
    updated_at: datetime


# -- request bodies for the HTTP facade --

class LoginRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    phone: Optional[str] = None


class AmountRequest(BaseModel):
    amount: Decimal


class IncomeRequest(BaseModel):
    n: Decimal = Decimal("1")


class AddPayoutAddressRequest(BaseModel):
    currency: str
    network: str
    address: str

    model_config = ConfigDict(json_schema_extra={
        "example": {"currency": "USDT", "network": "TRC20", "address": "TXYZ1234567890abcdef"}
    })


class CreateWithdrawRequest(BaseModel):
    currency: str
    network: str
    address: str
    amount: Decimal
    fee: Optional[Decimal] = None


class DepositTxRequest(BaseModel):
    tx_hash: str
    network: str = Network.BEP20.value
    currency: str = Currency.USDT.value


def to_decimal(value) -> Optional[Decimal]:
    """Parse a numeric-ish value into a finite Decimal, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def from_remote(model: type[BaseModel], row: dict):
    """Wrap a ledger-owned row; rows that do not fit the model are kept as sent."""
    try:
        return model.model_validate(row)
    except ValidationError:
        return model.model_construct(**row)
