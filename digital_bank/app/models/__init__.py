from .db import Account as AccountModel
from .db import AuthSession as AuthSessionModel
from .db import SignupEvent as SignupEventModel
from .db import Transaction as TransactionModel
from .db import User as UserModel
from .enums import (
    AccountState,
    AccountType,
    Currency,
    Role,
    TransactionStatus,
    TransactionType,
)
from .schemas import (
    AccountRequest,
    AccountResponse,
    AuthResponse,
    DepositRequest,
    LoginRequest,
    Page,
    SignupRequest,
    SignupStatusResponse,
    TransactionFilters,
    TransactionResponse,
    TransferRequest,
    UserResponse,
)

__all__ = [
    "AccountRequest",
    "AccountResponse",
    "AuthResponse",
    "DepositRequest",
    "LoginRequest",
    "Page",
    "SignupRequest",
    "SignupStatusResponse",
    "TransactionFilters",
    "TransactionResponse",
    "TransferRequest",
    "UserResponse",
    "AccountState",
    "AccountType",
    "Currency",
    "Role",
    "TransactionStatus",
    "TransactionType",
    "AccountModel",
    "AuthSessionModel",
    "SignupEventModel",
    "TransactionModel",
    "UserModel",
]
