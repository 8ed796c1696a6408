"""Error taxonomy for port resolution."""

from typing import Any, Optional

from ..config import MAX_PORT, MIN_PORT


class PortClearError(Exception):
    """Base class for every failure reported for a single port."""

    kind = "Error"

    def __init__(self, port: Any, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.port = port
        self.message = message
        self.detail = detail


class InvalidPortError(PortClearError):
    kind = "InvalidPort"

    def __init__(self, port: Any):
        super().__init__(
            port,
            f"Invalid port number: {port}. Port must be between {MIN_PORT} and {MAX_PORT}."
        )


class InvalidMethodError(PortClearError):
    kind = "InvalidMethod"

    def __init__(self, method: Any, port: Any = None):
        super().__init__(port, f"Invalid method: {method}. Method must be 'tcp' or 'udp'.")
        self.method = method


class NoProcessFoundError(PortClearError):
    kind = "NoProcessFound"

    def __init__(self, port: int, detail: Optional[str] = None):
        super().__init__(port, f"No process running on port {port}", detail)


class PermissionDeniedError(PortClearError):
    kind = "PermissionDenied"

    def __init__(self, port: int, hint: str, detail: Optional[str] = None):
        super().__init__(port, f"Permission denied for port {port}. {hint}", detail)
        self.hint = hint


class TerminationFailedError(PortClearError):
    kind = "TerminationFailed"

    def __init__(self, port: int, detail: Optional[str] = None):
        reason = (detail or "").strip() or "unknown error"
        super().__init__(port, f"Failed to kill process on port {port}: {reason}", detail)


class UnexpectedError(PortClearError):
    """Wraps a non-taxonomy exception so a batch can keep going."""
    kind = "Unexpected"

    def __init__(self, port: Any, exc: BaseException):
        super().__init__(port, f"Unexpected error on port {port}: {exc}", repr(exc))
