from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, status

from ..core.dependencies import (
    get_account_service,
    get_admin_service,
    get_transfer_service,
    require_roles,
)
from ..models import (
    AccountResponse,
    AccountState,
    DepositRequest,
    Page,
    Role,
    TransactionResponse,
    UserModel,
)
from ..services import AccountService, AdminAccountService, TransferService


router = APIRouter(prefix="/admin/accounts", tags=["admin"])

@router.get("/blocked", response_model=Page[AccountResponse])
def list_blocked_accounts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _: UserModel = Depends(require_roles(Role.ADMIN)),
    service: AdminAccountService = Depends(get_admin_service),
) -> Page[AccountResponse]:
    return service.list_blocked(page, limit)

@router.get("/unlock-requests", response_model=Page[AccountResponse])
def list_unlock_requests(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _: UserModel = Depends(require_roles(Role.ADMIN)),
    service: AdminAccountService = Depends(get_admin_service),
) -> Page[AccountResponse]:
    return service.list_unlock_requests(page, limit)

@router.get("/search", response_model=Page[AccountResponse])
def search_accounts(
    q: str = Query(..., min_length=1, max_length=64),
    state: Optional[AccountState] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _: UserModel = Depends(require_roles(Role.ADMIN)),
    service: AdminAccountService = Depends(get_admin_service),
) -> Page[AccountResponse]:
    return service.search(q, page, limit, state)

@router.patch("/{account_id}/unblock", response_model=AccountResponse)
def unblock_account(
    account_id: str,
    _: UserModel = Depends(require_roles(Role.ADMIN)),
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    return service.unblock(account_id)

@router.post(
    "/{account_id}/deposit",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
def deposit(
    account_id: str,
    payload: DepositRequest,
    user: UserModel = Depends(require_roles(Role.ADMIN, Role.OPS)),
    service: TransferService = Depends(get_transfer_service),
    idempotency_key: Optional[str] = Header(
        None, convert_underscores=False, alias="Idempotency-Key"
    ),
) -> TransactionResponse:
    return service.deposit(user, account_id, payload, idempotency_key)

__all__ = ["router"]
