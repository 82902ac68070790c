from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import or_
from sqlmodel import Session, col

from ..models import AccountModel, AccountResponse, AccountState, Page
from .repository import BankRepository
from .serializers import account_to_response, make_page


STATE_CONDITIONS: dict[AccountState, list[Any]] = {
    AccountState.PENDING_APPROVAL: [col(AccountModel.is_pending).is_(True)],
    AccountState.ACTIVE: [
        col(AccountModel.is_pending).is_(False),
        col(AccountModel.is_active).is_(True),
    ],
    AccountState.BLOCKED: [
        col(AccountModel.is_pending).is_(False),
        col(AccountModel.is_active).is_(False),
        col(AccountModel.is_unlock_request).is_(False),
    ],
    AccountState.UNLOCK_REQUESTED: [
        col(AccountModel.is_pending).is_(False),
        col(AccountModel.is_active).is_(False),
        col(AccountModel.is_unlock_request).is_(True),
    ],
}

# The blocked tab shows every inactive, approved account, with or without an unlock request.
BLOCKED_OR_REQUESTED = [
    col(AccountModel.is_pending).is_(False),
    col(AccountModel.is_active).is_(False),
]


class AdminAccountService:
    """Paginated read side of the approval console."""

    def __init__(self, session: Session, repository: Optional[BankRepository] = None) -> None:
        self.session = session
        self.repository = repository or BankRepository(session)

    def _page(self, conditions: list[Any], page: int, limit: int) -> Page[AccountResponse]:
        rows, total = self.repository.page_accounts(conditions, page, limit)
        return make_page([account_to_response(a) for a in rows], total, page, limit)

    def list_pending(self, page: int = 1, limit: int = 10) -> Page[AccountResponse]:
        return self._page(STATE_CONDITIONS[AccountState.PENDING_APPROVAL], page, limit)

    def list_blocked(self, page: int = 1, limit: int = 10) -> Page[AccountResponse]:
        return self._page(BLOCKED_OR_REQUESTED, page, limit)

    def list_unlock_requests(self, page: int = 1, limit: int = 10) -> Page[AccountResponse]:
        return self._page(STATE_CONDITIONS[AccountState.UNLOCK_REQUESTED], page, limit)

    def search(
        self,
        query: str,
        page: int = 1,
        limit: int = 10,
        state: Optional[AccountState] = None,
    ) -> Page[AccountResponse]:
        query = query.strip()
        if not query:
            raise ValueError("Search query cannot be empty")
        escaped = query.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        conditions: list[Any] = [
            or_(
                col(AccountModel.id).ilike(pattern, escape="\\"),
                col(AccountModel.owner_id).ilike(pattern, escape="\\"),
                col(AccountModel.account_number).ilike(pattern, escape="\\"),
            )
        ]
        if state is not None:
            conditions.extend(STATE_CONDITIONS[state])
        return self._page(conditions, page, limit)
