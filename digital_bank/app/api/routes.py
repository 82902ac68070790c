from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, status

from ..core.dependencies import (
    get_account_service,
    get_admin_service,
    get_current_user,
    get_transfer_service,
    require_roles,
)
from ..models import (
    AccountRequest,
    AccountResponse,
    Currency,
    Page,
    Role,
    TransactionFilters,
    TransactionResponse,
    TransactionStatus,
    TransactionType,
    TransferRequest,
    UserModel,
)
from ..services import AccountService, AdminAccountService, TransferService


router = APIRouter(prefix="/accounts", tags=["accounts"])

@router.post("/request", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def request_account(
    payload: AccountRequest,
    user: UserModel = Depends(require_roles(Role.CUSTOMER)),
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    return service.request_account(user, payload)

@router.get("/user/{user_id}", response_model=list[AccountResponse])
def list_user_accounts(
    user_id: str,
    user: UserModel = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> list[AccountResponse]:
    return service.list_user_accounts(user_id, user)

@router.get("/pending", response_model=Page[AccountResponse])
def list_pending_accounts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _: UserModel = Depends(require_roles(Role.ADMIN)),
    service: AdminAccountService = Depends(get_admin_service),
) -> Page[AccountResponse]:
    return service.list_pending(page, limit)

@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: str,
    user: UserModel = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    return service.get_account(account_id, user)

@router.patch("/{account_id}/activate", response_model=AccountResponse)
def activate_account(
    account_id: str,
    _: UserModel = Depends(require_roles(Role.ADMIN)),
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    return service.activate(account_id)

@router.patch("/{account_id}/block", response_model=AccountResponse)
def block_account(
    account_id: str,
    user: UserModel = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    return service.block(account_id, user)

@router.patch("/{account_id}/request-unlock", response_model=AccountResponse)
def request_unlock(
    account_id: str,
    user: UserModel = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    return service.request_unlock(account_id, user)

transaction_router = APIRouter(prefix="/transactions", tags=["transactions"])

@transaction_router.post(
    "/transfer", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED
)
def create_transfer(
    payload: TransferRequest,
    user: UserModel = Depends(get_current_user),
    service: TransferService = Depends(get_transfer_service),
    idempotency_key: Optional[str] = Header(
        None, convert_underscores=False, alias="Idempotency-Key"
    ),
) -> TransactionResponse:
    return service.transfer(user, payload, idempotency_key)

@transaction_router.get("/user/{user_id}", response_model=list[TransactionResponse])
def list_user_transactions(
    user_id: str,
    user: UserModel = Depends(get_current_user),
    service: TransferService = Depends(get_transfer_service),
) -> list[TransactionResponse]:
    return service.list_user_transactions(user_id, user)

@transaction_router.get("/search", response_model=Page[TransactionResponse])
def search_transactions(
    transaction_id: Optional[str] = Query(None, alias="transactionId"),
    account_id: Optional[str] = Query(None, alias="accountId"),
    user_id: Optional[str] = Query(None, alias="userId"),
    currency: Optional[Currency] = None,
    min_amount: Optional[Decimal] = Query(None, alias="minAmount", ge=0),
    max_amount: Optional[Decimal] = Query(None, alias="maxAmount", ge=0),
    tx_status: Optional[TransactionStatus] = Query(None, alias="status"),
    tx_type: Optional[TransactionType] = Query(None, alias="type"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _: UserModel = Depends(require_roles(Role.ADMIN, Role.OPS)),
    service: TransferService = Depends(get_transfer_service),
) -> Page[TransactionResponse]:
    filters = TransactionFilters(
        transaction_id=transaction_id or None,
        account_id=account_id or None,
        user_id=user_id or None,
        currency=currency,
        min_amount=min_amount,
        max_amount=max_amount,
        status=tx_status,
        type=tx_type,
    )
    return service.search_transactions(filters, page, limit)

__all__ = ["router", "transaction_router"]
