from fastapi import HTTPException, status
from typing import Any, Dict, Optional

from academy_backend.errors import (
    AccessError,
    ConflictError,
    TransientStoreError,
    Unauthenticated,
    Unauthorized,
    ValidationError,
)

class NotFoundException(HTTPException):
    def __init__(self,detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_404_NOT_FOUND
        self.detail = detail or "Not found"

class ForbiddenException(HTTPException):
    def __init__(self,detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_403_FORBIDDEN
        self.detail = detail or "Forbidden"

class BadRequestException(HTTPException):
    def __init__(self,detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_400_BAD_REQUEST
        self.detail = detail or "Bad request"

class UnauthorizedException(HTTPException):
    def __init__(self,detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers or {"WWW-Authenticate": "Bearer"}
        self.status_code = status.HTTP_401_UNAUTHORIZED
        self.detail = detail or "Unauthorized"

class ConflictException(HTTPException):
    def __init__(self,detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_409_CONFLICT
        self.detail = detail or "Conflict"

class InternalServerException(HTTPException):
    def __init__(self,detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        self.detail = detail or "Internal server error"

class ServiceUnavailableException(HTTPException):
    def __init__(self,detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        self.detail = detail or "Service unavailable error"

def to_http_exception(error: AccessError) -> HTTPException:
    if isinstance(error, Unauthenticated):
        return UnauthorizedException(detail=error.detail)
    elif isinstance(error, Unauthorized):
        # requirement details stay in the server log
        return ForbiddenException()
    elif isinstance(error, ValidationError):
        return BadRequestException(detail=error.detail)
    elif isinstance(error, ConflictError):
        return ConflictException(detail=error.detail)
    elif isinstance(error, TransientStoreError):
        return ServiceUnavailableException()
    else:
        return InternalServerException()
