from http import HTTPStatus


class BankError(Exception):
    """Base class for errors whose message is shown to the caller verbatim."""

    status_code: int = HTTPStatus.BAD_REQUEST


class NotFoundError(BankError):
    status_code = HTTPStatus.NOT_FOUND

class AccountNotFoundError(NotFoundError):
    """Raised when an account id or account number does not resolve."""

class UserNotFoundError(NotFoundError):
    """Raised when a user id is missing from the store."""

class AuthenticationError(BankError):
    """Raised for bad credentials and invalid, expired or revoked tokens."""

    status_code = HTTPStatus.UNAUTHORIZED

class PermissionDeniedError(BankError):
    """Raised when the caller's role or ownership does not allow the action."""

    status_code = HTTPStatus.FORBIDDEN

class InvalidStateTransitionError(BankError):
    """Raised when an account is not in a state the transition accepts."""

    status_code = HTTPStatus.CONFLICT

class DuplicateAccountError(BankError):
    """Raised when a customer already holds an account in the currency."""

    status_code = HTTPStatus.CONFLICT

class InsufficientFundsError(BankError):
    """Raised when a transfer would drop balance below zero."""

    status_code = HTTPStatus.CONFLICT

class DuplicateIdempotencyKeyError(BankError):
    """Raised when the same idempotency key is reused with different input."""

    status_code = HTTPStatus.CONFLICT

class EmailAlreadyRegisteredError(BankError):
    status_code = HTTPStatus.CONFLICT

class SignupRateLimitedError(BankError):
    """Raised while the global signup cooldown is running."""

    status_code = HTTPStatus.TOO_MANY_REQUESTS

    def __init__(self, message: str, remaining_seconds: int) -> None:
        super().__init__(message)
        self.remaining_seconds = remaining_seconds

class InvalidTransferError(BankError):
    """Raised for transfers that can never succeed, e.g. to the same account."""
