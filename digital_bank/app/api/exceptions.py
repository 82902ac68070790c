from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.errors import BankError, SignupRateLimitedError


logger = logging.getLogger(__name__)


def error_body(status_code: int, message) -> dict:
    return {
        "statusCode": int(status_code),
        "message": message,
        "error": HTTPStatus(status_code).phrase,
    }


def _validation_message(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    return f"{location}: {error.get('msg')}" if location else str(error.get("msg"))


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(SignupRateLimitedError)
    async def signup_rate_limited_handler(
        request: Request, exc: SignupRateLimitedError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.status_code, str(exc)),
            headers={"Retry-After": str(exc.remaining_seconds)},
        )

    @app.exception_handler(BankError)
    async def bank_error_handler(request: Request, exc: BankError) -> JSONResponse:
        logger.info(
            "request.rejected",
            extra={"path": request.url.path, "status": int(exc.status_code), "reason": str(exc)},
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.status_code, str(exc)),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.status_code, exc.detail),
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        messages = [_validation_message(error) for error in exc.errors()]
        return JSONResponse(
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
            content=error_body(HTTPStatus.UNPROCESSABLE_ENTITY, messages),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=HTTPStatus.BAD_REQUEST,
            content=error_body(HTTPStatus.BAD_REQUEST, str(exc)),
        )
