"""Data models for PortClear."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from ..config import DEFAULT_METHOD, MAX_PORT, MIN_PORT
from .errors import InvalidMethodError, InvalidPortError, PortClearError


class Transport(Enum):
    TCP = "tcp"
    UDP = "udp"

    @property
    def label(self) -> str:
        """Protocol column as printed by netstat ("TCP"/"UDP")."""
        return self.value.upper()


class Mode(Enum):
    TERMINATE = "terminate"
    INSPECT = "inspect"


def validate_port(port: Any) -> int:
    """
    Coerce a port given as int or numeric string.

    Raises:
        InvalidPortError: for missing, non-numeric or out of range values.
    """
    if isinstance(port, bool) or port is None:
        raise InvalidPortError(port)

    if isinstance(port, int):
        value = port
    elif isinstance(port, str):
        text = port.strip()
        # int() also reads other scripts' digits, e.g. Arabic-Indic
        if not text.isascii():
            raise InvalidPortError(port)
        try:
            value = int(text, 10)
        except ValueError:
            raise InvalidPortError(port) from None
    else:
        raise InvalidPortError(port)

    if not MIN_PORT <= value <= MAX_PORT:
        raise InvalidPortError(port)
    return value


def validate_transport(method: Any) -> Transport:
    """Normalize 'tcp'/'udp' in any case to a Transport."""
    if isinstance(method, Transport):
        return method
    if not isinstance(method, str):
        raise InvalidMethodError(method)
    try:
        return Transport(method.strip().lower())
    except ValueError:
        raise InvalidMethodError(method) from None


@dataclass(frozen=True)
class PortQuery:
    """A validated request against a single port."""
    port: int
    transport: Transport = Transport.TCP
    mode: Mode = Mode.TERMINATE
    include_tree: bool = False

    @classmethod
    def build(
        cls,
        port: Union[int, str],
        method: Union[str, Transport] = DEFAULT_METHOD,
        list_only: bool = False,
        tree: bool = False,
    ) -> "PortQuery":
        """Validate raw caller input; the port is checked before the method."""
        return cls(
            port=validate_port(port),
            transport=validate_transport(method),
            mode=Mode.INSPECT if list_only else Mode.TERMINATE,
            include_tree=bool(tree),
        )

    @property
    def is_inspect(self) -> bool:
        return self.mode == Mode.INSPECT


@dataclass
class OwningProcess:
    """A process bound to the queried port."""
    pid: int
    name: Optional[str] = None


@dataclass
class PortResult:
    """Outcome of a successful resolution."""
    port: int
    platform: str
    terminated: bool = False
    pids: tuple[int, ...] = ()
    process_name: Optional[str] = None
    is_inspect_only: bool = False
    raw_output: Optional[str] = None
    raw_error: Optional[str] = None

    @property
    def primary_pid(self) -> Optional[int]:
        """The owning PID when exactly one process holds the port."""
        if len(self.pids) == 1:
            return self.pids[0]
        return None

    @property
    def processes(self) -> list[OwningProcess]:
        """Owning processes; only the primary one carries a name."""
        return [
            OwningProcess(pid=pid, name=self.process_name if index == 0 else None)
            for index, pid in enumerate(self.pids)
        ]

    def to_dict(self) -> dict:
        """Serialize with the public result keys, omitting empty fields."""
        result: dict[str, Any] = {
            'port': self.port,
            'killed': self.terminated,
            'platform': self.platform,
        }
        if self.pids:
            result['pids'] = list(self.pids)
            if self.primary_pid is not None:
                result['pid'] = self.primary_pid
        if self.process_name:
            result['name'] = self.process_name
        if self.raw_output:
            result['stdout'] = self.raw_output
        if self.raw_error:
            result['stderr'] = self.raw_error
        if self.is_inspect_only:
            result['listing'] = True
        return result


@dataclass
class BatchOutcome:
    """Per-port entry of a multi-port run."""
    requested: Any
    result: Optional[PortResult] = None
    error: Optional[PortClearError] = None

    @property
    def success(self) -> bool:
        return self.error is None and self.result is not None

    @property
    def port_label(self) -> str:
        if self.result is not None:
            return str(self.result.port)
        return str(self.requested)

    def to_dict(self) -> dict:
        if self.success:
            data = self.result.to_dict()
            data['success'] = True
            return data
        return {
            'port': self.requested,
            'success': False,
            'error': str(self.error),
            'errorKind': self.error.kind if self.error else None,
        }
