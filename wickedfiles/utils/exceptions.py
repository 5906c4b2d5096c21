from typing import Optional


class WickedFilesException(Exception):
    """Base exception for the application"""
    status_code = 500

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class AuthenticationError(WickedFilesException):
    """Authentication related errors"""
    status_code = 401


class AuthorizationError(WickedFilesException):
    """Authorization related errors"""
    status_code = 403


class ValidationError(WickedFilesException):
    """Validation related errors"""
    status_code = 400


class NotFoundError(WickedFilesException):
    """Resource not found errors"""
    status_code = 404


class ConflictError(WickedFilesException):
    """Resource conflict errors"""
    status_code = 409


class FileOperationError(WickedFilesException):
    """Upstream S3 operation failed"""
    status_code = 400


class ShareDeliveryError(WickedFilesException):
    """A live share could not be turned into a delivery URL"""
    status_code = 502


class RateLimitError(WickedFilesException):
    """Too many attempts"""
    status_code = 429
