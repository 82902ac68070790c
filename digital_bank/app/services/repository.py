from __future__ import annotations

from typing import Any, Optional, Sequence

from sqlalchemy import func, or_
from sqlmodel import Session, col, select

from ..core.money import to_minor
from ..models import (
    AccountModel,
    AuthSessionModel,
    SignupEventModel,
    TransactionFilters,
    TransactionModel,
    UserModel,
)


class BankRepository:
    """Thin data access layer around the SQLModel session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _save(self, row):
        self.session.add(row)
        self.session.flush()
        self.session.refresh(row)
        return row

    def _paginate(self, stmt, page: int, limit: int) -> tuple[list[Any], int]:
        total = self.session.exec(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        ).one()
        rows = self.session.exec(stmt.offset((page - 1) * limit).limit(limit)).all()
        return list(rows), int(total)

    # Users --------------------------------------------------------------
    def add_user(self, user: UserModel) -> UserModel:
        return self._save(user)

    def get_user(self, user_id: str) -> Optional[UserModel]:
        return self.session.get(UserModel, user_id)

    def get_user_by_email(self, email: str) -> Optional[UserModel]:
        stmt = select(UserModel).where(UserModel.email == email.lower())
        return self.session.exec(stmt).first()

    # Auth sessions ------------------------------------------------------
    def add_auth_session(self, auth_session: AuthSessionModel) -> AuthSessionModel:
        return self._save(auth_session)

    def get_auth_session(self, session_id: str) -> Optional[AuthSessionModel]:
        return self.session.get(AuthSessionModel, session_id)

    # Signup events ------------------------------------------------------
    def add_signup_event(self, user_id: str) -> SignupEventModel:
        return self._save(SignupEventModel(user_id=user_id))

    def last_signup_event(self) -> Optional[SignupEventModel]:
        stmt = select(SignupEventModel).order_by(col(SignupEventModel.created_at).desc())
        return self.session.exec(stmt).first()

    # Accounts -----------------------------------------------------------
    def add_account(self, account: AccountModel) -> AccountModel:
        return self._save(account)

    def get_account(self, account_id: str) -> Optional[AccountModel]:
        return self.session.get(AccountModel, account_id)

    def get_account_for_update(self, account_id: str) -> Optional[AccountModel]:
        """Re-read an account row, bypassing the identity map.

        Callers hold the account's process lock; ``FOR UPDATE`` extends the
        guarantee to databases that support row locks.
        """
        stmt = (
            select(AccountModel)
            .where(AccountModel.id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.session.exec(stmt).first()

    def get_account_by_number(self, account_number: str) -> Optional[AccountModel]:
        stmt = select(AccountModel).where(AccountModel.account_number == account_number)
        return self.session.exec(stmt).first()

    def account_number_exists(self, account_number: str) -> bool:
        return self.get_account_by_number(account_number) is not None

    def find_account_in_currency(self, owner_id: str, currency) -> Optional[AccountModel]:
        stmt = (
            select(AccountModel)
            .where(AccountModel.owner_id == owner_id)
            .where(AccountModel.currency == currency)
            .order_by(col(AccountModel.is_pending))
        )
        return self.session.exec(stmt).first()

    def list_accounts_for_owner(self, owner_id: str) -> list[AccountModel]:
        stmt = (
            select(AccountModel)
            .where(AccountModel.owner_id == owner_id)
            .order_by(col(AccountModel.created_at), col(AccountModel.id))
        )
        return list(self.session.exec(stmt))

    def page_accounts(
        self,
        conditions: Sequence[Any],
        page: int,
        limit: int,
    ) -> tuple[list[AccountModel], int]:
        stmt = select(AccountModel)
        for condition in conditions:
            stmt = stmt.where(condition)
        stmt = stmt.order_by(col(AccountModel.created_at), col(AccountModel.id))
        return self._paginate(stmt, page, limit)

    # Transactions -------------------------------------------------------
    def add_transaction(self, transaction: TransactionModel) -> TransactionModel:
        return self._save(transaction)

    def get_transaction_by_key(self, idempotency_key: str) -> Optional[TransactionModel]:
        stmt = select(TransactionModel).where(
            TransactionModel.idempotency_key == idempotency_key
        )
        return self.session.exec(stmt).first()

    def _owned_account_ids(self, user_id: str):
        return select(AccountModel.id).where(AccountModel.owner_id == user_id)

    def list_transactions_for_user(self, user_id: str) -> list[TransactionModel]:
        owned = self._owned_account_ids(user_id)
        stmt = (
            select(TransactionModel)
            .where(
                or_(
                    col(TransactionModel.account_id).in_(owned),
                    col(TransactionModel.destination_account_id).in_(owned),
                )
            )
            .order_by(col(TransactionModel.created_at).desc(), col(TransactionModel.id))
        )
        return list(self.session.exec(stmt))

    def search_transactions(
        self,
        filters: TransactionFilters,
        page: int,
        limit: int,
    ) -> tuple[list[TransactionModel], int]:
        stmt = select(TransactionModel)
        if filters.transaction_id:
            stmt = stmt.where(TransactionModel.id == filters.transaction_id)
        if filters.account_id:
            stmt = stmt.where(
                or_(
                    TransactionModel.account_id == filters.account_id,
                    TransactionModel.destination_account_id == filters.account_id,
                )
            )
        if filters.user_id:
            owned = self._owned_account_ids(filters.user_id)
            stmt = stmt.where(
                or_(
                    col(TransactionModel.account_id).in_(owned),
                    col(TransactionModel.destination_account_id).in_(owned),
                )
            )
        if filters.currency:
            in_currency = select(AccountModel.id).where(
                AccountModel.currency == filters.currency
            )
            # Deposits have no source; they are booked in the destination currency.
            stmt = stmt.where(
                or_(
                    col(TransactionModel.account_id).in_(in_currency),
                    (col(TransactionModel.account_id).is_(None))
                    & col(TransactionModel.destination_account_id).in_(in_currency),
                )
            )
        if filters.min_amount is not None:
            stmt = stmt.where(TransactionModel.amount >= to_minor(filters.min_amount))
        if filters.max_amount is not None:
            stmt = stmt.where(TransactionModel.amount <= to_minor(filters.max_amount))
        if filters.status:
            stmt = stmt.where(TransactionModel.status == filters.status)
        if filters.type:
            stmt = stmt.where(TransactionModel.type == filters.type)
        stmt = stmt.order_by(
            col(TransactionModel.created_at).desc(), col(TransactionModel.id)
        )
        return self._paginate(stmt, page, limit)
