from __future__ import annotations

import logging
import math
import threading
from datetime import datetime, timedelta
from typing import Optional
from uuid import uuid4

from sqlmodel import Session

from ..core.config import Settings
from ..core.errors import (
    AuthenticationError,
    EmailAlreadyRegisteredError,
    SignupRateLimitedError,
)
from ..core.security import (
    ACCESS,
    REFRESH,
    create_token,
    decode_token,
    hash_password,
    verify_password,
)
from ..models import (
    AuthResponse,
    AuthSessionModel,
    LoginRequest,
    Role,
    SignupRequest,
    SignupStatusResponse,
    UserModel,
)
from ..models.db import as_utc, utcnow
from .repository import BankRepository
from .serializers import user_to_response


logger = logging.getLogger(__name__)

# Two signups racing past the cooldown check must not both succeed.
_signup_lock = threading.Lock()


class AuthService:
    def __init__(
        self,
        session: Session,
        settings: Settings,
        repository: Optional[BankRepository] = None,
    ) -> None:
        self.session = session
        self.settings = settings
        self.repository = repository or BankRepository(session)

    # ------------------------------------------------------------------
    # Helper utilities
    # ------------------------------------------------------------------
    def _cooldown(self) -> timedelta:
        return timedelta(minutes=self.settings.signup_cooldown_minutes)

    def _last_signup_time(self) -> Optional[datetime]:
        event = self.repository.last_signup_event()
        return as_utc(event.created_at) if event else None

    def _remaining_seconds(self, now: datetime, last_signup: Optional[datetime]) -> int:
        if last_signup is None:
            return 0
        remaining = (last_signup + self._cooldown() - now).total_seconds()
        return max(0, math.ceil(remaining))

    def _issue_tokens(self, user: UserModel, auth_session: AuthSessionModel) -> AuthResponse:
        access_token = create_token(
            self.settings,
            user_id=user.id,
            role=user.role.value,
            session_id=auth_session.id,
            token_type=ACCESS,
            expires_delta=timedelta(minutes=self.settings.access_token_expire_minutes),
        )
        refresh_token = create_token(
            self.settings,
            user_id=user.id,
            role=user.role.value,
            session_id=auth_session.id,
            token_type=REFRESH,
            expires_delta=timedelta(days=self.settings.refresh_token_expire_days),
            jti=auth_session.refresh_jti,
        )
        return AuthResponse(
            user=user_to_response(user),
            access_token=access_token,
            refresh_token=refresh_token,
        )

    def _open_session(self, user: UserModel) -> AuthSessionModel:
        return self.repository.add_auth_session(
            AuthSessionModel(
                user_id=user.id,
                refresh_jti=str(uuid4()),
                expires_at=utcnow() + timedelta(days=self.settings.refresh_token_expire_days),
            )
        )

    def _live_session(self, session_id: str) -> AuthSessionModel:
        auth_session = self.repository.get_auth_session(session_id)
        if auth_session is None or auth_session.revoked_at is not None:
            raise AuthenticationError("Session has ended, please log in again")
        if as_utc(auth_session.expires_at) <= utcnow():
            raise AuthenticationError("Session has expired, please log in again")
        return auth_session

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def signup_status(self) -> SignupStatusResponse:
        now = utcnow()
        last_signup = self._last_signup_time()
        remaining = self._remaining_seconds(now, last_signup)
        return SignupStatusResponse(
            can_signup=remaining == 0,
            remaining_seconds=remaining,
            server_time=now,
            last_signup_time=last_signup,
            cooldown_minutes=self.settings.signup_cooldown_minutes,
        )

    def signup(self, payload: SignupRequest) -> AuthResponse:
        email = payload.email.lower()
        with _signup_lock:
            remaining = self._remaining_seconds(utcnow(), self._last_signup_time())
            if remaining > 0:
                logger.info("auth.signup.rate_limited", extra={"remaining_seconds": remaining})
                raise SignupRateLimitedError(
                    f"Signups are limited, try again in {remaining} seconds",
                    remaining_seconds=remaining,
                )
            if self.repository.get_user_by_email(email) is not None:
                raise EmailAlreadyRegisteredError("Email is already registered")

            user = self.repository.add_user(
                UserModel(
                    email=email,
                    password_hash=hash_password(payload.password),
                    role=payload.role,
                )
            )
            self.repository.add_signup_event(user.id)
            auth_session = self._open_session(user)
            self.session.commit()

        logger.info("auth.signup", extra={"user_id": user.id, "role": user.role.value})
        return self._issue_tokens(user, auth_session)

    def login(self, payload: LoginRequest) -> AuthResponse:
        user = self.repository.get_user_by_email(payload.email)
        if user is None or not verify_password(payload.password, user.password_hash):
            logger.info("auth.login.failed")
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise AuthenticationError("User is inactive")

        auth_session = self._open_session(user)
        self.session.commit()
        logger.info("auth.login", extra={"user_id": user.id})
        return self._issue_tokens(user, auth_session)

    def logout(self, access_token: str) -> None:
        token = decode_token(self.settings, access_token, ACCESS)
        auth_session = self._live_session(token.session_id)
        auth_session.revoked_at = utcnow()
        self.session.add(auth_session)
        self.session.commit()
        logger.info("auth.logout", extra={"user_id": token.user_id})

    def refresh(self, refresh_token: str) -> AuthResponse:
        token = decode_token(self.settings, refresh_token, REFRESH)
        auth_session = self._live_session(token.session_id)
        if auth_session.refresh_jti != token.jti:
            # A rotated token came back: treat the whole session as compromised.
            auth_session.revoked_at = utcnow()
            self.session.add(auth_session)
            self.session.commit()
            logger.warning("auth.refresh.reused", extra={"user_id": token.user_id})
            raise AuthenticationError("Refresh token has already been used")

        user = self.repository.get_user(token.user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("User is inactive")

        auth_session.refresh_jti = str(uuid4())
        self.session.add(auth_session)
        self.session.commit()
        self.session.refresh(auth_session)
        logger.info("auth.refresh", extra={"user_id": user.id})
        return self._issue_tokens(user, auth_session)

    def authenticate(self, access_token: str) -> UserModel:
        token = decode_token(self.settings, access_token, ACCESS)
        self._live_session(token.session_id)
        user = self.repository.get_user(token.user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("User is inactive")
        return user

    def ensure_bootstrap_admin(self) -> Optional[UserModel]:
        """Create the configured admin if missing; it never counts as a signup."""
        email = self.settings.bootstrap_admin_email
        password = self.settings.bootstrap_admin_password
        if not email or not password:
            return None
        existing = self.repository.get_user_by_email(email)
        if existing is not None:
            return existing

        user = self.repository.add_user(
            UserModel(
                email=email.lower(),
                password_hash=hash_password(password),
                role=Role.ADMIN,
            )
        )
        self.session.commit()
        logger.info("auth.bootstrap_admin.created", extra={"user_id": user.id})
        return user
