import logging
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    BUSINESS_RULE = "business_rule"
    UNHANDLED = "unhandled"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.AUTHENTICATION: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.BUSINESS_RULE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNHANDLED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@dataclass
class ServiceError:
    kind: ErrorKind
    message: str


@dataclass
class Result(Generic[T]):
    """Outcome of a service operation: either a value or a ServiceError."""

    value: Optional[T] = None
    error: Optional[ServiceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "Result[T]":
        return cls(error=ServiceError(kind, message))


def unwrap(result: Result[T]) -> T:
    """Return the value of a successful result, or raise the matching HTTPException."""
    if result.error is not None:
        raise HTTPException(
            status_code=result.error.kind.status_code,
            detail=result.error.message,
        )
    return result.value


# =========================
# GLOBAL HANDLERS
# =========================

def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning("Validation failed for %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=ErrorKind.VALIDATION.status_code,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=ErrorKind.UNHANDLED.status_code,
            content={"detail": f"Error: {exc}"},
        )
