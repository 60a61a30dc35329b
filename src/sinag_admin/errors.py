"""Error taxonomy shared by adapters, builders and the HTTP layer."""

from typing import Any, Dict, Optional


class SinagError(Exception):
    """Base error carrying a machine-readable kind and a human message."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class ConfigurationError(SinagError):
    """Raised when an external service is missing its configuration."""

    kind = "configuration"


class ValidationError(SinagError):
    """Raised when admin input is rejected before reaching the network."""

    kind = "validation"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["field"] = self.field
        return data


class QueryError(SinagError):
    """Raised when an Event Log or Object Store call fails."""

    kind = "query"


class EventDecodeError(SinagError):
    """Raised when an event payload lacks a required field."""

    kind = "decode"


class AuthorizationError(SinagError):
    """Raised when the caller holds no AdminCap."""

    kind = "authorization"


class SubmissionError(SinagError):
    """Raised when the signer or the network rejects a transaction."""

    kind = "submission"


class ExecutionFailed(SinagError):
    """Raised when a transaction was included but its effects report failure."""

    kind = "execution"

    def __init__(self, digest: str, message: str):
        super().__init__(message)
        self.digest = digest

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["digest"] = self.digest
        return data


class ConfirmationTimeout(SinagError):
    """Raised when a submitted transaction could not be confirmed in time.

    The transaction may still succeed later; callers must not report it as failed.
    """

    kind = "confirmation_timeout"

    def __init__(self, digest: str, timeout: float, message: Optional[str] = None):
        super().__init__(message or f"Could not confirm transaction {digest} within {timeout:g}s")
        self.digest = digest
        self.timeout = timeout

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["digest"] = self.digest
        return data
