from fastapi import HTTPException, status
from typing import Any, Dict, Optional

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
        self.headers = headers
        self.status_code = status.HTTP_401_UNAUTHORIZED
        self.detail = detail or "Unauthorized"
