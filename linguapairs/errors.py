"""
LinguaPairs Backend - Errors
Domain exceptions raised by controllers and the HTTP error envelope
"""

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Any, Dict, List, Optional
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Error codes used in the JSON error envelope"""
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    NOT_ENOUGH_PAIRS = "NOT_ENOUGH_PAIRS"
    GENERATION_FAILED = "GENERATION_FAILED"


# Domain exceptions

class LinguaPairsError(Exception):
    """Base class for errors raised by controllers"""


class DeckNotFoundError(LinguaPairsError):
    pass


class DeckForbiddenError(LinguaPairsError):
    pass


class PairNotFoundError(LinguaPairsError):
    pass


class PairAlreadyFlaggedError(LinguaPairsError):
    pass


class NotEnoughPairsError(LinguaPairsError):
    def __init__(self, available: int, required: int):
        super().__init__(f"Deck has {available} pairs, {required} required")
        self.available = available
        self.required = required


class QuotaExceededError(LinguaPairsError):
    pass


class GenerationInProgressError(LinguaPairsError):
    pass


class GenerationOutputError(LinguaPairsError):
    """LLM response did not conform to the requested pair schema"""


class InvalidLanguagesError(LinguaPairsError):
    def __init__(self, message: str, details: List[Dict[str, str]]):
        super().__init__(message)
        self.message = message
        self.details = details


# HTTP layer

class ApiError(HTTPException):
    """HTTP error rendered as {"error": {"code", "message", "details"?}}"""

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        message: str,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.code = code
        self.message = message
        self.details = details


def error_body(code: ErrorCode, message: str, details: Optional[Any] = None) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code.value, "message": message}
    if details is not None:
        error["details"] = details
    return {"error": error}


def not_found(message: str = "Deck not found") -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, ErrorCode.NOT_FOUND, message)


def unauthorized(message: str = "Authentication required") -> ApiError:
    return ApiError(status.HTTP_401_UNAUTHORIZED, ErrorCode.UNAUTHORIZED, message)


def forbidden(message: str) -> ApiError:
    return ApiError(status.HTTP_403_FORBIDDEN, ErrorCode.FORBIDDEN, message)


def internal_error(message: str = "An unexpected error occurred") -> ApiError:
    return ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.INTERNAL_ERROR, message)


def validation_details(errors) -> List[Dict[str, str]]:
    """Flatten pydantic errors into [{field, message}], dropping the body/query prefix"""
    details = []
    for err in errors:
        loc = list(err.get("loc", ()))
        if loc and loc[0] in ("body", "query", "path"):
            loc = loc[1:]
        details.append({
            "field": ".".join(str(part) for part in loc),
            "message": err.get("msg", "Invalid value"),
        })
    return details


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, exc.details),
        headers=exc.headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=error_body(
            ErrorCode.VALIDATION_ERROR,
            "Validation failed",
            validation_details(exc.errors()),
        ),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error in {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(ErrorCode.INTERNAL_ERROR, "An unexpected error occurred"),
    )
