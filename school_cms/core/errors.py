from typing import Optional

SERVER_ERROR_MESSAGE = "حدث خطأ في الخادم"


class AppError(Exception):
    """Base error rendered as ``{"error": message, "code": code}``."""

    status_code = 500

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code

    def to_dict(self) -> dict:
        content = {"error": self.message}
        if self.code:
            content["code"] = self.code
        return content


class ValidationFailed(AppError):
    status_code = 400


class NotFound(AppError):
    status_code = 404


class Conflict(AppError):
    status_code = 409


class AuthenticationRequired(AppError):
    status_code = 401


class InvalidToken(AppError):
    """Bad or expired session; the handler also clears the cookie."""

    status_code = 403


class StorageError(AppError):
    status_code = 500
