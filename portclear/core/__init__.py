from .models import PortQuery, PortResult, OwningProcess, BatchOutcome, Transport, Mode
from .errors import (
    PortClearError, InvalidPortError, InvalidMethodError, NoProcessFoundError,
    PermissionDeniedError, TerminationFailedError, UnexpectedError,
)
from .strategies import PlatformStrategy, WindowsStrategy, PosixStrategy, get_strategy
from .resolver import PortResolver
from .batch import resolve_batch

__all__ = [
    'PortQuery', 'PortResult', 'OwningProcess', 'BatchOutcome', 'Transport', 'Mode',
    'PortClearError', 'InvalidPortError', 'InvalidMethodError', 'NoProcessFoundError',
    'PermissionDeniedError', 'TerminationFailedError', 'UnexpectedError',
    'PlatformStrategy', 'WindowsStrategy', 'PosixStrategy', 'get_strategy',
    'PortResolver', 'resolve_batch',
]
