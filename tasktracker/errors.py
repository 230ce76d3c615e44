from typing import List, Optional


class ApiError(Exception):
    """Base for every error the API reports to clients as {message, errors?}."""

    status_code = 500

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors

    def to_body(self) -> dict:
        body = {"message": self.message}
        if self.errors:
            body["errors"] = list(self.errors)
        return body


class ValidationError(ApiError):
    status_code = 400


class AuthError(ApiError):
    status_code = 401


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    # Duplicate unique fields are reported as a plain bad request.
    status_code = 400


class ServerError(ApiError):
    status_code = 500
