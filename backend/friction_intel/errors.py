"""Error taxonomy shared by the classifier, batch engine and scoring engine.

Per-case failures (``ParseError``, ``ClassificationAPIError`` and exhausted
``TransientServiceError``) are counted inside a batch and never escape it.
The remaining classes cross the engine boundary and are rendered by
``ErrorHandlerMiddleware`` with their ``status_code``.
"""


class FrictionIntelError(Exception):
    code = "internal_error"
    status_code = 500

    def __init__(self, message: str, detail: dict | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.message, "context": self.detail}


class ConfigurationError(FrictionIntelError):
    """Classifier credentials missing or rejected. Never retried."""

    code = "service_misconfigured"
    status_code = 503


class TransientServiceError(FrictionIntelError):
    """Rate limit, overload or connectivity failure from the classifier."""

    code = "service_degraded"
    status_code = 503

    def __init__(self, message: str, detail: dict | None = None, status: int | None = None):
        super().__init__(message, detail)
        self.status = status


class ClassificationAPIError(FrictionIntelError):
    """Non-retryable error response from the classifier for one case."""

    code = "classification_failed"
    status_code = 502


class ServiceDegradedError(FrictionIntelError):
    """A batch was aborted because its first classifier call failed."""

    code = "service_degraded"
    status_code = 503


class ParseError(FrictionIntelError):
    code = "parse_error"
    status_code = 422


class PersistenceError(FrictionIntelError):
    code = "persistence_error"
    status_code = 500


class BatchTimeoutError(FrictionIntelError):
    code = "batch_timeout"
    status_code = 504


class AccountBusyError(FrictionIntelError):
    code = "account_busy"
    status_code = 409


class AccountNotFoundError(FrictionIntelError):
    code = "account_not_found"
    status_code = 404
