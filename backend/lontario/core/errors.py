from __future__ import annotations

from typing import Any


class HiringError(Exception):
    """
    Base class for domain errors. Each subclass carries the HTTP status and
    error code used by the API error handler, so services never import FastAPI.
    """

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, code: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(HiringError):
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(HiringError):
    status_code = 404
    code = "NOT_FOUND"


class InvalidStateError(HiringError):
    status_code = 409
    code = "INVALID_STATE"


class ConflictError(HiringError):
    status_code = 409
    code = "CONFLICT"


class ConfigurationError(HiringError):
    status_code = 503
    code = "AI_NOT_CONFIGURED"


class RateLimitError(HiringError):
    status_code = 429
    code = "RATE_LIMITED"


class IntegrationError(HiringError):
    status_code = 502
    code = "UPSTREAM_ERROR"


class ScoringError(IntegrationError):
    code = "SCORING_FAILED"


class QuestionGenerationError(IntegrationError):
    code = "QUESTION_GENERATION_FAILED"
