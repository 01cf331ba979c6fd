from typing import Any, Dict, Optional
from fastapi import HTTPException, status

from astro_backend.repositories import (
    DuplicateError,
    NotFoundError,
    StoreUnavailableError,
    ValidationFailedError,
)

class NotFoundException(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_404_NOT_FOUND
        self.detail = detail or "Not found"

class ForbiddenException(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_403_FORBIDDEN
        self.detail = detail or "Forbidden"

class BadRequestException(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_400_BAD_REQUEST
        self.detail = detail or "Bad request"

class UnauthorizedException(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_401_UNAUTHORIZED
        self.detail = detail or "Unauthorized"

class ConflictException(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_409_CONFLICT
        self.detail = detail or "Conflict"

class ServiceUnavailableException(HTTPException):
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        self.detail = detail or "Service unavailable"

class InternalServerException(HTTPException):
    """Unexpected failure; the cause stays in the server log."""

    def __init__(self):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

def to_http_exception(error: Exception) -> HTTPException:
    """
    Translate a repository error into the HTTP error the routes answer with.

    Validation failures carry the offending ids so that callers can correct
    their request.
    """
    if isinstance(error, HTTPException):
        return error
    elif isinstance(error, NotFoundError):
        return NotFoundException(detail=str(error))
    elif isinstance(error, DuplicateError):
        return ConflictException(detail=str(error))
    elif isinstance(error, ValidationFailedError):
        return BadRequestException(detail={"message": str(error), "invalid_ids": error.invalid_ids})
    elif isinstance(error, StoreUnavailableError):
        return ServiceUnavailableException(detail=str(error))
    else:
        return InternalServerException()
