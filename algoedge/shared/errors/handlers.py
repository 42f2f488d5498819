"""
Centralized error handlers for FastAPI.

Maps domain-specific errors to HTTP responses.
No stack traces or internal details are exposed to clients.
All error responses use the ErrorResponse schema: ``{error, details?}``.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from algoedge.domain.mt5.errors import (
    AccountAlreadyConnectedError,
    AccountNotFoundError,
    AccountNotProvisionedError,
    AccountSyncError,
    AuthenticationError,
    ConnectionCancelledError,
    DeploymentFailedError,
    Mt5DomainError,
    ProviderNotConfiguredError,
    ProvisioningRejectedError,
)

logger = logging.getLogger(__name__)

HTTP_400 = 400
HTTP_401 = 401
HTTP_404 = 404
HTTP_499 = 499
HTTP_500 = 500
HTTP_502 = 502


def _error_response(
    status_code: int, error: str, details: Optional[Any] = None
) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, Any] = {"error": error}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(RequestValidationError)
    async def handle_validation(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report schema violations as 400 instead of FastAPI's 422."""
        errors = jsonable_encoder(exc.errors())
        for error in errors:
            # Never echo submitted values back; the body carries a password.
            error.pop("input", None)
            error.pop("ctx", None)
        return _error_response(HTTP_400, "Invalid input data", errors)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication(
        _request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=HTTP_401,
            content={"error": exc.message},
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(AccountAlreadyConnectedError)
    async def handle_already_connected(
        _request: Request, exc: AccountAlreadyConnectedError
    ) -> JSONResponse:
        logger.info("User %s already has a connected MT5 account", exc.user_id)
        return _error_response(HTTP_400, exc.message)

    @app.exception_handler(DeploymentFailedError)
    async def handle_deployment_failed(
        _request: Request, exc: DeploymentFailedError
    ) -> JSONResponse:
        logger.warning("MetaAPI deployment failed for account %s", exc.remote_id)
        return _error_response(HTTP_400, exc.message)

    @app.exception_handler(ProvisioningRejectedError)
    async def handle_provisioning_rejected(
        _request: Request, exc: ProvisioningRejectedError
    ) -> JSONResponse:
        logger.warning("MetaAPI rejected account creation: %s", exc.message)
        return _error_response(HTTP_400, exc.message)

    @app.exception_handler(ProviderNotConfiguredError)
    async def handle_not_configured(
        _request: Request, exc: ProviderNotConfiguredError
    ) -> JSONResponse:
        logger.error("MetaAPI token is not configured")
        return _error_response(HTTP_500, exc.message)

    @app.exception_handler(AccountNotFoundError)
    async def handle_account_not_found(
        _request: Request, exc: AccountNotFoundError
    ) -> JSONResponse:
        return _error_response(HTTP_404, exc.message)

    @app.exception_handler(AccountNotProvisionedError)
    async def handle_not_provisioned(
        _request: Request, exc: AccountNotProvisionedError
    ) -> JSONResponse:
        logger.warning("MT5 account %s has no MetaAPI id", exc.account_id)
        return _error_response(HTTP_400, exc.message)

    @app.exception_handler(AccountSyncError)
    async def handle_sync_error(
        _request: Request, exc: AccountSyncError
    ) -> JSONResponse:
        logger.error("Account information unavailable for %s", exc.remote_id)
        return _error_response(HTTP_502, exc.message)

    @app.exception_handler(ConnectionCancelledError)
    async def handle_cancelled(
        _request: Request, exc: ConnectionCancelledError
    ) -> JSONResponse:
        return _error_response(HTTP_499, exc.message)

    @app.exception_handler(Mt5DomainError)
    async def handle_mt5_domain(
        _request: Request, exc: Mt5DomainError
    ) -> JSONResponse:
        """Catch-all for unhandled MT5 domain errors."""
        logger.error("Unhandled MT5 domain error: %s", exc.message)
        return _error_response(HTTP_500, "Internal server error")

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(HTTP_500, "Internal server error")
