"""Error kinds raised by the lounge core and rendered by the HTTP layer."""


class SparkHubError(Exception):
    status_code = 500
    default_code = "internal_error"

    def __init__(self, message: str, code: str | None = None, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def to_dict(self) -> dict:
        out = {"ok": False, "error": self.code, "message": self.message}
        if self.details:
            out["details"] = self.details
        return out


class ValidationError(SparkHubError):
    status_code = 400
    default_code = "validation_error"


class NotFoundError(SparkHubError):
    status_code = 404
    default_code = "not_found"


class ConflictError(SparkHubError):
    status_code = 409
    default_code = "conflict"


class AlreadyClosedError(SparkHubError):
    status_code = 409
    default_code = "session_already_closed"


class InconsistentStateError(SparkHubError):
    """Some records were written and others were not; needs manual reconciliation."""

    status_code = 500
    default_code = "inconsistent_state"


class StorageError(SparkHubError):
    status_code = 502
    default_code = "storage_error"
