"""Enumeration types shared by tables and wire schemas."""

from enum import Enum


class Role(str, Enum):
    ADMIN = "ADMIN"
    OPS = "OPS"
    CUSTOMER = "CUSTOMER"


class AccountType(str, Enum):
    CHECKING = "CHECKING"
    SAVINGS = "SAVINGS"


class Currency(str, Enum):
    PEN = "PEN"
    USD = "USD"


class AccountState(str, Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    ACTIVE = "ACTIVE"
    BLOCKED = "BLOCKED"
    UNLOCK_REQUESTED = "UNLOCK_REQUESTED"


class TransactionType(str, Enum):
    TRANSFER = "TRANSFER"
    DEPOSIT = "DEPOSIT"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    POSTED = "POSTED"
    FAILED = "FAILED"
