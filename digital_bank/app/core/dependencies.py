from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from ..models import Role, UserModel
from ..services import (
    AccountService,
    AdminAccountService,
    AuthService,
    BankRepository,
    TransferService,
)
from ..services.permissions import ensure_role
from .config import Settings, get_settings
from .db import get_session
from .errors import AuthenticationError

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"

bearer = HTTPBearer(auto_error=False)


def get_auth_service(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(session, settings, BankRepository(session))

def get_account_service(session: Session = Depends(get_session)) -> AccountService:
    return AccountService(session, BankRepository(session))

def get_admin_service(session: Session = Depends(get_session)) -> AdminAccountService:
    return AdminAccountService(session, BankRepository(session))

def get_transfer_service(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> TransferService:
    return TransferService(session, settings, BankRepository(session))


def _token_from(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
    cookie_name: str,
) -> str:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    token = request.cookies.get(cookie_name)
    if not token:
        raise AuthenticationError("Authentication required")
    return token

def get_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> str:
    return _token_from(request, credentials, ACCESS_COOKIE)

def get_refresh_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> str:
    return _token_from(request, credentials, REFRESH_COOKIE)

def get_current_user(
    token: str = Depends(get_access_token),
    service: AuthService = Depends(get_auth_service),
) -> UserModel:
    return service.authenticate(token)

def require_roles(*roles: Role) -> Callable[..., UserModel]:
    def dependency(user: UserModel = Depends(get_current_user)) -> UserModel:
        ensure_role(user, *roles)
        return user

    return dependency
