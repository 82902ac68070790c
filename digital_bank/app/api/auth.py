from fastapi import APIRouter, Depends, Response, status

from ..core.config import Settings, get_settings
from ..core.dependencies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    get_access_token,
    get_auth_service,
    get_refresh_token,
)
from ..models import AuthResponse, LoginRequest, SignupRequest, SignupStatusResponse
from ..services import AuthService


router = APIRouter(prefix="/auth", tags=["auth"])

def _set_auth_cookies(response: Response, auth: AuthResponse, settings: Settings) -> None:
    response.set_cookie(
        ACCESS_COOKIE,
        auth.access_token,
        max_age=settings.access_token_expire_minutes * 60,
        samesite="lax",
    )
    response.set_cookie(
        REFRESH_COOKIE,
        auth.refresh_token,
        max_age=settings.refresh_token_expire_days * 24 * 3600,
        httponly=True,
        samesite="lax",
    )

@router.get("/signup-status", response_model=SignupStatusResponse)
def signup_status(service: AuthService = Depends(get_auth_service)) -> SignupStatusResponse:
    return service.signup_status()

@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignupRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    auth = service.signup(payload)
    _set_auth_cookies(response, auth, settings)
    return auth

@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    auth = service.login(payload)
    _set_auth_cookies(response, auth, settings)
    return auth

@router.post("/refresh", response_model=AuthResponse)
def refresh(
    response: Response,
    token: str = Depends(get_refresh_token),
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    auth = service.refresh(token)
    _set_auth_cookies(response, auth, settings)
    return auth

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    response: Response,
    token: str = Depends(get_access_token),
    service: AuthService = Depends(get_auth_service),
) -> None:
    service.logout(token)
    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE)

__all__ = ["router"]
