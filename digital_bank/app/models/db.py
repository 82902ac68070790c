from __future__ import annotations
from datetime import datetime, UTC
from typing import Optional
from uuid import uuid4
from sqlmodel import Field, SQLModel

from .enums import (
    AccountState,
    AccountType,
    Currency,
    Role,
    TransactionStatus,
    TransactionType,
)


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands datetimes back naive; they were written as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def new_id() -> str:
    return str(uuid4())


class User(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    role: Role = Field(default=Role.CUSTOMER)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)

class AuthSession(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    refresh_jti: str
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime
    revoked_at: Optional[datetime] = None

class SignupEvent(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="user.id")
    created_at: datetime = Field(default_factory=utcnow, index=True)

class Account(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    account_number: str = Field(index=True, unique=True, min_length=16, max_length=16)
    type: AccountType = Field(default=AccountType.CHECKING)
    currency: Currency
    balance: int = Field(default=0, ge=0)
    owner_id: str = Field(foreign_key="user.id", index=True)
    is_pending: bool = True
    is_active: bool = False
    is_unlock_request: bool = False
    blocked_at: Optional[datetime] = None
    unlock_requested_at: Optional[datetime] = None
    activated_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow, index=True)

    @property
    def state(self) -> AccountState:
        if self.is_pending:
            return AccountState.PENDING_APPROVAL
        if self.is_active:
            return AccountState.ACTIVE
        if self.is_unlock_request:
            return AccountState.UNLOCK_REQUESTED
        return AccountState.BLOCKED

class Transaction(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    idempotency_key: str = Field(index=True, unique=True)
    request_signature: str
    account_id: Optional[str] = Field(default=None, foreign_key="account.id", index=True)
    destination_account_id: str = Field(foreign_key="account.id", index=True)
    type: TransactionType = Field(default=TransactionType.TRANSFER)
    amount: int = Field(gt=0)
    destination_amount: int = Field(gt=0)
    exchange_rate: Optional[str] = None
    status: TransactionStatus = Field(default=TransactionStatus.PENDING)
    description: Optional[str] = None
    initiated_by: Optional[str] = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=utcnow, index=True)
