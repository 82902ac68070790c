"""Conversion of table rows into wire responses."""
from __future__ import annotations

import math
from decimal import Decimal

from ..core.money import from_minor
from ..models import (
    AccountModel,
    AccountResponse,
    Page,
    TransactionModel,
    TransactionResponse,
    UserModel,
    UserResponse,
)
from ..models.db import as_utc


def user_to_response(user: UserModel) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        role=user.role,
        is_active=user.is_active,
    )


def account_to_response(account: AccountModel) -> AccountResponse:
    return AccountResponse(
        id=account.id,
        account_number=account.account_number,
        type=account.type,
        currency=account.currency,
        balance=from_minor(account.balance),
        owner_id=account.owner_id,
        state=account.state,
        is_active=account.is_active,
        is_pending=account.is_pending,
        is_unlock_request=account.is_unlock_request,
        blocked_at=as_utc(account.blocked_at),
        unlock_requested_at=as_utc(account.unlock_requested_at),
        activated_at=as_utc(account.activated_at),
        created_at=as_utc(account.created_at),
    )


def transaction_to_response(transaction: TransactionModel) -> TransactionResponse:
    return TransactionResponse(
        id=transaction.id,
        idempotency_key=transaction.idempotency_key,
        account_id=transaction.account_id,
        destination_account_id=transaction.destination_account_id,
        type=transaction.type,
        amount=from_minor(transaction.amount),
        destination_amount=from_minor(transaction.destination_amount),
        exchange_rate=(
            Decimal(transaction.exchange_rate) if transaction.exchange_rate else None
        ),
        status=transaction.status,
        description=transaction.description,
        initiated_by=transaction.initiated_by,
        created_at=as_utc(transaction.created_at),
    )


def make_page(items: list, total: int, page: int, limit: int) -> Page:
    return Page(
        data=items,
        total=total,
        page=page,
        total_pages=math.ceil(total / limit) if total else 0,
    )
