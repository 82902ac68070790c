from .accounts import AccountService
from .admin import AdminAccountService
from .auth import AuthService
from .exchange import ExchangeRateService
from .locks import AccountLockRegistry, account_locks
from .repository import BankRepository
from .transfers import TransferService

__all__ = [
    "AccountLockRegistry",
    "AccountService",
    "AdminAccountService",
    "AuthService",
    "BankRepository",
    "ExchangeRateService",
    "TransferService",
    "account_locks",
]
