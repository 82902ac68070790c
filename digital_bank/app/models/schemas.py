from datetime import datetime
from decimal import Decimal
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from .enums import (
    AccountState,
    AccountType,
    Currency,
    Role,
    TransactionStatus,
    TransactionType,
)

T = TypeVar("T")


class CamelModel(BaseModel):
    """Wire models speak camelCase but also accept snake_case input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# Auth ------------------------------------------------------------------

class SignupRequest(CamelModel):
    email: EmailStr
    # bcrypt only looks at the first 72 bytes
    password: str = Field(..., min_length=8, max_length=72)
    role: Role = Role.CUSTOMER

class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)

class UserResponse(CamelModel):
    id: str
    email: str
    role: Role
    is_active: bool

class AuthResponse(CamelModel):
    user: UserResponse
    access_token: str
    refresh_token: str

class SignupStatusResponse(CamelModel):
    can_signup: bool
    remaining_seconds: int = Field(..., ge=0)
    server_time: datetime
    last_signup_time: Optional[datetime] = None
    cooldown_minutes: int

# Accounts --------------------------------------------------------------

class AccountRequest(CamelModel):
    currency: Currency
    type: AccountType = AccountType.CHECKING

class AccountResponse(CamelModel):
    id: str
    account_number: str
    type: AccountType
    currency: Currency
    balance: Decimal = Field(..., ge=0, description="Balance in major units, two decimals")
    owner_id: str
    state: AccountState
    is_active: bool
    is_pending: bool
    is_unlock_request: bool
    blocked_at: Optional[datetime] = None
    unlock_requested_at: Optional[datetime] = None
    activated_at: Optional[datetime] = None
    created_at: datetime

# Transactions ----------------------------------------------------------

class TransferRequest(CamelModel):
    from_account_id: str = Field(..., min_length=1)
    to_account_number: str = Field(..., pattern=r"^\d{16}$")
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    description: Optional[str] = Field(default=None, max_length=255)
    idempotency_key: Optional[str] = Field(default=None, min_length=1, max_length=128)

class DepositRequest(CamelModel):
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    description: Optional[str] = Field(default=None, max_length=255)

class TransactionResponse(CamelModel):
    id: str
    idempotency_key: str
    account_id: Optional[str] = Field(default=None, description="Source account; empty for deposits")
    destination_account_id: str
    type: TransactionType
    amount: Decimal = Field(..., description="Debited amount in the source currency")
    destination_amount: Decimal = Field(..., description="Credited amount in the destination currency")
    exchange_rate: Optional[Decimal] = None
    status: TransactionStatus
    description: Optional[str] = None
    initiated_by: Optional[str] = None
    created_at: datetime

class TransactionFilters(CamelModel):
    transaction_id: Optional[str] = None
    account_id: Optional[str] = None
    user_id: Optional[str] = None
    currency: Optional[Currency] = None
    min_amount: Optional[Decimal] = Field(default=None, ge=0)
    max_amount: Optional[Decimal] = Field(default=None, ge=0)
    status: Optional[TransactionStatus] = None
    type: Optional[TransactionType] = None

# Pagination ------------------------------------------------------------

class Page(CamelModel, Generic[T]):
    data: list[T]
    total: int
    page: int
    total_pages: int
