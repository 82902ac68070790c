from __future__ import annotations

import json
import logging
from typing import Any, Optional, Tuple
from uuid import uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from ..core.config import Settings
from ..core.errors import (
    AccountNotFoundError,
    DuplicateIdempotencyKeyError,
    InsufficientFundsError,
    InvalidStateTransitionError,
    InvalidTransferError,
    PermissionDeniedError,
    UserNotFoundError,
)
from ..core.money import convert_minor, format_rate, to_minor
from ..models import (
    AccountModel,
    AccountState,
    DepositRequest,
    Page,
    Role,
    TransactionFilters,
    TransactionModel,
    TransactionResponse,
    TransactionStatus,
    TransactionType,
    TransferRequest,
    UserModel,
)
from .exchange import ExchangeRateService
from .locks import AccountLockRegistry, account_locks
from .permissions import ensure_owner_or_role
from .repository import BankRepository
from .serializers import make_page, transaction_to_response


logger = logging.getLogger(__name__)


class TransferService:
    def __init__(
        self,
        session: Session,
        settings: Settings,
        repository: Optional[BankRepository] = None,
        locks: Optional[AccountLockRegistry] = None,
        rates: Optional[ExchangeRateService] = None,
    ) -> None:
        self.session = session
        self.repository = repository or BankRepository(session)
        self.locks = locks or account_locks
        self.rates = rates or ExchangeRateService(settings)

    # ------------------------------------------------------------------
    # Helper utilities
    # ------------------------------------------------------------------
    def _encode_signature(self, signature: Tuple[Any, ...]) -> str:
        return json.dumps(signature, sort_keys=True)

    def _check_idempotency(
        self,
        idempotency_key: str,
        signature: str,
    ) -> Optional[TransactionModel]:
        record = self.repository.get_transaction_by_key(idempotency_key)
        if record is None:
            return None

        if record.request_signature != signature:
            raise DuplicateIdempotencyKeyError(
                "Idempotency key was previously used with different parameters"
            )

        return record

    def _set_status(self, transaction: TransactionModel, status: TransactionStatus) -> None:
        if transaction.status is not TransactionStatus.PENDING:
            raise RuntimeError(
                f"Transaction {transaction.id} is already {transaction.status.value}"
            )
        transaction.status = status

    def _locked_account(self, account_id: str) -> AccountModel:
        account = self.repository.get_account_for_update(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        return account

    def _record_failure(self, transaction: TransactionModel) -> None:
        failed = TransactionModel(
            idempotency_key=transaction.idempotency_key,
            request_signature=transaction.request_signature,
            account_id=transaction.account_id,
            destination_account_id=transaction.destination_account_id,
            type=transaction.type,
            amount=transaction.amount,
            destination_amount=transaction.destination_amount,
            exchange_rate=transaction.exchange_rate,
            description=transaction.description,
            initiated_by=transaction.initiated_by,
        )
        self._set_status(failed, TransactionStatus.FAILED)
        try:
            self.session.add(failed)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(
                "transaction.failure_not_recorded",
                extra={"idempotency_key": transaction.idempotency_key},
            )

    def _post(
        self,
        transaction: TransactionModel,
        debit: Optional[AccountModel],
        credit: AccountModel,
    ) -> TransactionModel:
        """Apply both balance mutations and the transaction row in one commit."""
        if debit is not None:
            debit.balance -= transaction.amount
            self.session.add(debit)
        credit.balance += transaction.destination_amount
        self.session.add(credit)
        self._set_status(transaction, TransactionStatus.POSTED)
        self.session.add(transaction)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            # Same key committed by a request that did not share our locks.
            replay = self._check_idempotency(
                transaction.idempotency_key, transaction.request_signature
            )
            if replay is not None:
                return replay
            raise
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(
                "transaction.commit_failed",
                extra={"idempotency_key": transaction.idempotency_key},
            )
            self._record_failure(transaction)
            raise
        self.session.refresh(transaction)
        return transaction

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def transfer(
        self,
        actor: UserModel,
        payload: TransferRequest,
        idempotency_key: Optional[str] = None,
    ) -> TransactionResponse:
        key = idempotency_key or payload.idempotency_key or str(uuid4())
        amount = to_minor(payload.amount)
        signature = self._encode_signature(
            (
                "transfer",
                payload.from_account_id,
                payload.to_account_number,
                amount,
                payload.description,
            )
        )
        # Ownership is checked before any idempotent replay.
        source = self.repository.get_account(payload.from_account_id)
        if source is None:
            raise AccountNotFoundError(f"Account {payload.from_account_id} not found")
        if source.owner_id != actor.id:
            raise PermissionDeniedError("You can only transfer from your own accounts")

        cached = self._check_idempotency(key, signature)
        if cached is not None:
            logger.info(
                "idempotent.transfer.hit",
                extra={"transaction_id": cached.id, "idempotency_key": key},
            )
            return transaction_to_response(cached)

        dest = self.repository.get_account_by_number(payload.to_account_number)
        if dest is None:
            raise AccountNotFoundError(
                f"Destination account {payload.to_account_number} not found"
            )
        if dest.id == source.id:
            raise InvalidTransferError("Cannot transfer to the same account")

        with self.locks.hold(source.id, dest.id):
            cached = self._check_idempotency(key, signature)
            if cached is not None:
                logger.info(
                    "idempotent.transfer.hit",
                    extra={"transaction_id": cached.id, "idempotency_key": key},
                )
                return transaction_to_response(cached)

            source = self._locked_account(source.id)
            dest = self._locked_account(dest.id)

            if source.state is AccountState.PENDING_APPROVAL:
                raise InvalidStateTransitionError("Source account is pending approval")
            if source.state is not AccountState.ACTIVE:
                raise InvalidStateTransitionError("Source account is blocked")
            if dest.state is AccountState.PENDING_APPROVAL:
                raise InvalidStateTransitionError("Destination account is not active yet")
            if source.balance < amount:
                logger.info(
                    "transfer.rejected.insufficient_funds",
                    extra={"account_id": source.id, "amount": amount},
                )
                raise InsufficientFundsError("Insufficient funds for transfer")

            rate = self.rates.rate(source.currency, dest.currency)
            credited = convert_minor(amount, rate) if rate is not None else amount

            transaction = TransactionModel(
                idempotency_key=key,
                request_signature=signature,
                account_id=source.id,
                destination_account_id=dest.id,
                type=TransactionType.TRANSFER,
                amount=amount,
                destination_amount=credited,
                exchange_rate=format_rate(rate),
                description=payload.description,
                initiated_by=actor.id,
            )
            transaction = self._post(transaction, source, dest)

        logger.info(
            "transfer.posted",
            extra={
                "transaction_id": transaction.id,
                "source_account_id": transaction.account_id,
                "dest_account_id": transaction.destination_account_id,
                "amount": transaction.amount,
                "exchange_rate": transaction.exchange_rate,
            },
        )
        return transaction_to_response(transaction)

    def deposit(
        self,
        actor: UserModel,
        account_id: str,
        payload: DepositRequest,
        idempotency_key: Optional[str] = None,
    ) -> TransactionResponse:
        key = idempotency_key or str(uuid4())
        amount = to_minor(payload.amount)
        signature = self._encode_signature(
            ("deposit", account_id, amount, payload.description)
        )
        cached = self._check_idempotency(key, signature)
        if cached is not None:
            logger.info(
                "idempotent.deposit.hit",
                extra={"transaction_id": cached.id, "idempotency_key": key},
            )
            return transaction_to_response(cached)

        with self.locks.hold(account_id):
            cached = self._check_idempotency(key, signature)
            if cached is not None:
                return transaction_to_response(cached)

            account = self._locked_account(account_id)
            if account.state is not AccountState.ACTIVE:
                raise InvalidStateTransitionError("Deposits require an active account")

            transaction = TransactionModel(
                idempotency_key=key,
                request_signature=signature,
                account_id=None,
                destination_account_id=account.id,
                type=TransactionType.DEPOSIT,
                amount=amount,
                destination_amount=amount,
                description=payload.description,
                initiated_by=actor.id,
            )
            transaction = self._post(transaction, None, account)

        logger.info(
            "deposit.posted",
            extra={
                "transaction_id": transaction.id,
                "account_id": account_id,
                "amount": amount,
            },
        )
        return transaction_to_response(transaction)

    def list_user_transactions(
        self, user_id: str, actor: UserModel
    ) -> list[TransactionResponse]:
        ensure_owner_or_role(actor, user_id, Role.ADMIN)
        if self.repository.get_user(user_id) is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return [
            transaction_to_response(t)
            for t in self.repository.list_transactions_for_user(user_id)
        ]

    def search_transactions(
        self,
        filters: TransactionFilters,
        page: int = 1,
        limit: int = 10,
    ) -> Page[TransactionResponse]:
        if (
            filters.min_amount is not None
            and filters.max_amount is not None
            and filters.min_amount > filters.max_amount
        ):
            raise ValueError("minAmount cannot be greater than maxAmount")
        rows, total = self.repository.search_transactions(filters, page, limit)
        return make_page([transaction_to_response(t) for t in rows], total, page, limit)
