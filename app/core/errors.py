"""Business error taxonomy.

Services raise these; ``register_exception_handlers`` turns them into
``{"detail": ..., "kind": ...}`` responses at the request boundary.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError

logger = logging.getLogger(__name__)


class MarketplaceError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    @property
    def kind(self) -> str:
        return type(self).__name__


class ValidationError(MarketplaceError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class InvalidBudgetError(ValidationError):
    pass


class InvalidGroupSizeError(ValidationError):
    pass


class AuthorizationError(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND


class InsufficientFundsError(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidStateTransitionError(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current: str, attempted: str, message: str | None = None) -> None:
        super().__init__(
            message or f"Cannot move from '{current}' to '{attempted}'",
            current_status=current,
            attempted_status=attempted,
        )
        self.current = current
        self.attempted = attempted


class AlreadyFinalizedError(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT


class AlreadyProcessedError(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind, **exc.extra},
    )


async def persistence_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Persistence store unreachable while handling %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Persistence store unavailable", "kind": "PersistenceUnavailable"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
    app.add_exception_handler(OperationalError, persistence_error_handler)
    app.add_exception_handler(InterfaceError, persistence_error_handler)
