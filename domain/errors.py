"""Errors raised by the booking domain and mapped to HTTP responses in app.py."""


class DomainError(Exception):
    status_code = 500

    def __init__(self, message: str, errors: dict | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationFailed(DomainError):
    status_code = 400

    def __init__(self, errors: dict, message: str = "Invalid data"):
        super().__init__(message, errors)


class NotFound(DomainError):
    status_code = 404


class Conflict(DomainError):
    status_code = 409


class Forbidden(DomainError):
    status_code = 403


class PaymentProviderError(DomainError):
    status_code = 502
