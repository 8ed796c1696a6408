"""
PortClear - kill or inspect the process bound to a TCP/UDP port.
"""

from .config import VERSION
from .api import resolve, resolve_many
from .core import (
    PortQuery, PortResult, BatchOutcome, PortClearError, InvalidPortError,
    InvalidMethodError, NoProcessFoundError, PermissionDeniedError,
    TerminationFailedError,
)

__version__ = VERSION

__all__ = [
    "resolve", "resolve_many", "PortQuery", "PortResult", "BatchOutcome",
    "PortClearError", "InvalidPortError", "InvalidMethodError",
    "NoProcessFoundError", "PermissionDeniedError", "TerminationFailedError",
]
