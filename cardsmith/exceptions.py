from typing import Any, Optional


class CardsmithError(Exception):
    """Base class for errors surfaced to API callers.

    Every subclass carries a stable machine-readable ``code`` and the HTTP
    status the API layer answers with.
    """

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        error = {"code": self.code, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return error


class ValidationError(CardsmithError):
    code = "VALIDATION_ERROR"
    status_code = 400


class AuthorizationError(CardsmithError):
    code = "AUTHORIZATION_ERROR"
    status_code = 403


class NotFoundError(CardsmithError):
    code = "NOT_FOUND"
    status_code = 404


class QuotaExceededError(CardsmithError):
    code = "QUOTA_EXCEEDED"
    status_code = 429


class GenerationServiceError(CardsmithError):
    """External card generator failed or timed out. Safe for the caller to retry."""

    code = "GENERATION_SERVICE_ERROR"
    status_code = 503


class InvalidCardError(CardsmithError):
    code = "INVALID_CARD"
    status_code = 409


class SessionClosedError(CardsmithError):
    code = "SESSION_CLOSED"
    status_code = 409


class InternalError(CardsmithError):
    code = "INTERNAL_ERROR"
    status_code = 500


# LLM transport errors, wrapped into GenerationServiceError by the services.
class LLMException(Exception):
    pass


class LLMConnectionError(LLMException):
    pass


class LLMTimeoutError(LLMException):
    pass


class LLMResponseError(LLMException):
    pass
