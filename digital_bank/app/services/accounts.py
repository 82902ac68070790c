from __future__ import annotations

import logging
import secrets
from typing import Optional

from sqlmodel import Session

from ..core.errors import (
    AccountNotFoundError,
    DuplicateAccountError,
    InvalidStateTransitionError,
    PermissionDeniedError,
    UserNotFoundError,
)
from ..models import (
    AccountModel,
    AccountRequest,
    AccountResponse,
    AccountState,
    Role,
    UserModel,
)
from ..models.db import utcnow
from .locks import AccountLockRegistry, account_locks
from .permissions import ensure_owner_or_role
from .repository import BankRepository
from .serializers import account_to_response


logger = logging.getLogger(__name__)

ACCOUNT_NUMBER_ATTEMPTS = 10


def generate_account_number() -> str:
    """16 digits, never starting with zero."""
    return str(10**15 + secrets.randbelow(9 * 10**15))


class AccountService:
    """Account lifecycle: PENDING_APPROVAL -> ACTIVE <-> BLOCKED -> UNLOCK_REQUESTED -> ACTIVE."""

    def __init__(
        self,
        session: Session,
        repository: Optional[BankRepository] = None,
        locks: Optional[AccountLockRegistry] = None,
    ) -> None:
        self.session = session
        self.repository = repository or BankRepository(session)
        self.locks = locks or account_locks

    def _locked_account(self, account_id: str) -> AccountModel:
        account = self.repository.get_account_for_update(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return account

    def _commit(self, account: AccountModel, event: str, **context) -> AccountResponse:
        self.session.add(account)
        self.session.commit()
        self.session.refresh(account)
        logger.info(event, extra={"account_id": account.id, **context})
        return account_to_response(account)

    def _new_account_number(self) -> str:
        for _ in range(ACCOUNT_NUMBER_ATTEMPTS):
            candidate = generate_account_number()
            if not self.repository.account_number_exists(candidate):
                return candidate
        raise RuntimeError("Could not allocate a unique account number")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def request_account(self, actor: UserModel, payload: AccountRequest) -> AccountResponse:
        # The owner key serializes concurrent requests by the same customer.
        with self.locks.hold(f"owner:{actor.id}"):
            existing = self.repository.find_account_in_currency(actor.id, payload.currency)
            if existing is not None:
                if existing.is_pending:
                    raise DuplicateAccountError(
                        f"You already have a {payload.currency.value} account request pending approval"
                    )
                raise DuplicateAccountError(
                    f"You already have a {payload.currency.value} account"
                )

            account = self.repository.add_account(
                AccountModel(
                    account_number=self._new_account_number(),
                    type=payload.type,
                    currency=payload.currency,
                    owner_id=actor.id,
                )
            )
            return self._commit(
                account,
                "account.requested",
                owner_id=actor.id,
                currency=payload.currency.value,
            )

    def activate(self, account_id: str) -> AccountResponse:
        with self.locks.hold(account_id):
            account = self._locked_account(account_id)
            if account.state is not AccountState.PENDING_APPROVAL:
                raise InvalidStateTransitionError("Only accounts pending approval can be activated")

            account.is_pending = False
            account.is_active = True
            account.activated_at = utcnow()
            return self._commit(account, "account.activated")

    def block(self, account_id: str, actor: UserModel) -> AccountResponse:
        with self.locks.hold(account_id):
            account = self._locked_account(account_id)
            ensure_owner_or_role(actor, account.owner_id, Role.ADMIN)
            state = account.state
            if state is AccountState.PENDING_APPROVAL:
                raise InvalidStateTransitionError("Account is pending approval and cannot be blocked")
            if state is not AccountState.ACTIVE:
                raise InvalidStateTransitionError("Account is already blocked")

            account.is_active = False
            account.blocked_at = utcnow()
            return self._commit(account, "account.blocked", actor_id=actor.id)

    def request_unlock(self, account_id: str, actor: UserModel) -> AccountResponse:
        with self.locks.hold(account_id):
            account = self._locked_account(account_id)
            if account.owner_id != actor.id:
                raise PermissionDeniedError("Only the account owner can request an unlock")
            state = account.state
            if state is AccountState.UNLOCK_REQUESTED:
                logger.info("account.unlock_request.repeat", extra={"account_id": account.id})
                return account_to_response(account)
            if state is not AccountState.BLOCKED:
                raise InvalidStateTransitionError("Only blocked accounts can request an unlock")

            account.is_unlock_request = True
            account.unlock_requested_at = utcnow()
            return self._commit(account, "account.unlock_requested")

    def unblock(self, account_id: str) -> AccountResponse:
        with self.locks.hold(account_id):
            account = self._locked_account(account_id)
            if account.state not in (AccountState.BLOCKED, AccountState.UNLOCK_REQUESTED):
                raise InvalidStateTransitionError("Only blocked accounts can be unblocked")

            account.is_active = True
            account.is_unlock_request = False
            account.blocked_at = None
            account.unlock_requested_at = None
            return self._commit(account, "account.unblocked")

    def get_account(self, account_id: str, actor: UserModel) -> AccountResponse:
        account = self.repository.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        ensure_owner_or_role(actor, account.owner_id, Role.ADMIN, Role.OPS)
        return account_to_response(account)

    def list_user_accounts(self, user_id: str, actor: UserModel) -> list[AccountResponse]:
        ensure_owner_or_role(actor, user_id, Role.ADMIN)
        if self.repository.get_user(user_id) is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return [account_to_response(a) for a in self.repository.list_accounts_for_owner(user_id)]
