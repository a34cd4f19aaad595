"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain errors without importing HTTP concepts;
the handlers registered here translate them into responses of the form
{"error": "message"}.

Exception hierarchy:
    CredentialServiceError (base)
    ├── BadRequestError          — malformed body, bad user_id, short password
    ├── UnauthorizedError        — missing or invalid bearer token
    ├── ForbiddenError           — caller is not an administrator
    ├── TargetUserNotFoundError  — user_id has no directory row
    └── InternalServiceError     — store failures, unexpected provider errors

    IdentityProviderError (base, never rendered directly)
    ├── IdentityNotFoundError    — the referenced account does not exist
    └── IdentityConflictError    — login identifier already taken
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import CORS_HEADERS
from app.logging_config import logger


# ---------------------------------------------------------------------------
# Request-level exceptions
# ---------------------------------------------------------------------------

class CredentialServiceError(Exception):
    """Base exception for all errors surfaced to the caller."""

    status_code = 500

    def __init__(self, detail: str = "Request failed."):
        self.detail = detail
        super().__init__(self.detail)


class BadRequestError(CredentialServiceError):
    status_code = 400


class UnauthorizedError(CredentialServiceError):
    status_code = 401

    def __init__(self, detail: str = "Invalid access token."):
        super().__init__(detail)


class ForbiddenError(CredentialServiceError):
    status_code = 403

    def __init__(self, detail: str = "Only administrators can reset account passwords."):
        super().__init__(detail)


class TargetUserNotFoundError(CredentialServiceError):
    """Raised when the requested user_id has no directory row."""

    status_code = 404

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__("Target user not found.")


class InternalServiceError(CredentialServiceError):
    status_code = 500


# ---------------------------------------------------------------------------
# Identity provider exceptions
# ---------------------------------------------------------------------------

class IdentityProviderError(Exception):
    """
    Raised by an identity provider implementation when a call fails.

    Attributes:
        message: The provider's error message (logged, never returned to the caller).
        status_code: HTTP status reported by the provider, if any.
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class IdentityNotFoundError(IdentityProviderError):
    """The referenced account does not exist (deleted or never created)."""


class IdentityConflictError(IdentityProviderError):
    """The login identifier collides with an existing provider record."""


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def error_response(status_code: int, message: str) -> JSONResponse:
    # The unhandled-exception handler runs outside the CORS middleware
    return JSONResponse(
        status_code=status_code,
        content={"error": message},
        headers=CORS_HEADERS,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI application.

    Every error leaves the service as {"error": "message"}. This is called
    once during app startup in main.py.
    """

    @app.exception_handler(CredentialServiceError)
    async def credential_service_error_handler(
        request: Request, exc: CredentialServiceError
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
        return error_response(exc.status_code, exc.detail)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 405:
            return error_response(405, "Method not allowed.")
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(500, "Request failed.")
