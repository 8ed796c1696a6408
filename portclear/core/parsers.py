"""
Parsers for the text tables printed by OS diagnostic tools.

Column assumptions
------------------
netstat -ano (Windows)::

    Proto  Local Address          Foreign Address        State           PID
    TCP    0.0.0.0:135            0.0.0.0:0              LISTENING       1032
    TCP    [::]:8080              [::]:0                 LISTENING       4412
    UDP    0.0.0.0:5353           *:*                                    2280

    col 0 protocol, col 1 local address, last col PID. UDP rows have no
    State column, so the PID is always taken from the end of the row.

lsof -i (POSIX)::

    COMMAND   PID USER   FD   TYPE DEVICE SIZE/OFF NODE NAME
    node    41233 dev    23u  IPv4 0x1a2b      0t0  TCP *:3000 (LISTEN)

    first line is a header, col 0 command name, col 1 PID.

lsof -t (POSIX): one PID per line, nothing else.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional, TypeVar

T = TypeVar('T')

_WHITESPACE = re.compile(r'\s+')


@dataclass
class NetstatRow:
    """One connection row of `netstat -ano`."""
    protocol: str
    local_address: str
    pid: int

    @property
    def local_port(self) -> Optional[int]:
        # rpartition keeps IPv6 brackets intact: "[::1]:80" -> "80"
        _, sep, port = self.local_address.rpartition(':')
        if not sep or not port.isdigit():
            return None
        return int(port)


@dataclass
class LsofRow:
    """One data row of `lsof -i`."""
    command: str
    pid: int


def unique(items: Iterable[T]) -> list[T]:
    """Drop duplicates, keeping first-seen order."""
    seen = set()
    result = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        result.append(item)
    return result


def parse_netstat_line(line: str) -> Optional[NetstatRow]:
    """Split a netstat row; headers and malformed rows give None."""
    parts = _WHITESPACE.split(line.strip())
    if len(parts) < 4:
        return None
    pid = parts[-1]
    if not pid.isdigit():
        return None
    return NetstatRow(protocol=parts[0], local_address=parts[1], pid=int(pid))


def parse_netstat_pids(output: str, protocol: str, port: int) -> list[int]:
    """
    PIDs owning `port` in `netstat -ano` output.

    `protocol` is compared case-sensitively against the Proto column
    ("TCP"/"UDP"). The port must terminate the local address, so 80 never
    matches :8080 or :8000. PID 0 (System Idle, TIME_WAIT leftovers) is
    never an owner.
    """
    pids = []
    for line in output.splitlines():
        row = parse_netstat_line(line)
        if row is None or row.protocol != protocol:
            continue
        if row.local_port != port or row.pid == 0:
            continue
        pids.append(row.pid)
    return unique(pids)


def parse_lsof_rows(output: str) -> list[LsofRow]:
    """Data rows of `lsof -i`, header skipped."""
    rows = []
    lines = [line for line in output.splitlines() if line.strip()]
    for line in lines[1:]:
        parts = _WHITESPACE.split(line.strip())
        if len(parts) < 2 or not parts[1].isdigit():
            continue
        rows.append(LsofRow(command=parts[0], pid=int(parts[1])))
    return rows


def parse_pid_lines(output: str) -> list[int]:
    """PIDs from `lsof -t` style output, one per line."""
    pids = []
    for line in output.splitlines():
        line = line.strip()
        if line.isdigit():
            pids.append(int(line))
    return unique(pids)
