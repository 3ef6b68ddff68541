"""
Custom exceptions for debtcrasher.

Every component raises these exceptions so that callers (editor hosts,
scripts) can tell log I/O problems apart from generation failures.
"""


class DebtCrasherError(Exception):
    """Base exception for all debtcrasher errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class LogWriteError(DebtCrasherError):
    """Raised when appending to the event log fails."""

    def __init__(self, operation: str, path: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"Event log write error during {operation}"
        if path:
            message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause


class ValidationError(DebtCrasherError):
    """Raised when caller-supplied data or configuration is invalid."""

    def __init__(self, field: str, reason: str, value: str | None = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value
        super().__init__(f"Validation failed for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value


class ProviderConfigError(DebtCrasherError):
    """Raised when no usable generation provider is configured."""

    def __init__(self, provider: str, reason: str):
        super().__init__(
            f"Generation provider '{provider}' is not usable: {reason}",
            {"provider": provider, "reason": reason},
        )
        self.provider = provider
        self.reason = reason


class GenerationError(DebtCrasherError):
    """Base for failures of the external generation step."""


class TransportError(GenerationError):
    """Raised when the generation endpoint answers with a non-success status."""

    def __init__(self, status: int, body: str, provider: str | None = None):
        details: dict = {"status": status, "body": body[:2000]}
        if provider:
            details["provider"] = provider
        super().__init__(f"Generation request failed ({status}): {body[:500]}", details)
        self.status = status
        self.body = body
        self.provider = provider


class SchemaError(GenerationError):
    """Raised when a generation response cannot be parsed or has the wrong shape."""

    def __init__(self, reason: str, raw: str | None = None):
        details = {"reason": reason}
        if raw is not None:
            details["raw"] = raw[:500]
        super().__init__(f"Generation response schema error: {reason}", details)
        self.reason = reason
        self.raw = raw


class EmptyResultError(GenerationError):
    """Raised when a response parsed cleanly but held no valid blocks."""

    def __init__(self, candidates: int):
        super().__init__(
            f"No valid reasoning blocks found in response ({candidates} candidates discarded)",
            {"candidates": candidates},
        )
        self.candidates = candidates
