"""Platform strategies: find the processes on a port and kill them."""

import sys
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import psutil

from ..config import (
    COMMAND_TIMEOUT_SECONDS, KILL_BINARY, LSOF_BINARY, NETSTAT_COMMAND,
    PERMISSION_HINTS, TASKKILL_BINARY,
)
from ..utils.logging_config import get_logger, timed
from .commands import CommandResult, Runner, run_command
from .errors import NoProcessFoundError, PermissionDeniedError, TerminationFailedError
from .models import PortQuery, PortResult
from .parsers import parse_lsof_rows, parse_netstat_pids, parse_pid_lines, unique

logger = get_logger('strategies')

# Lower-cased fragments of tool errors that mean "not privileged enough"
PERMISSION_MARKERS = (
    'access is denied',
    'operation not permitted',
    'permission denied',
)


def is_permission_failure(result: CommandResult) -> bool:
    """Check whether a failed command failed for lack of privilege."""
    if result.permission_error:
        return True
    text = f"{result.stderr}\n{result.stdout}".lower()
    return any(marker in text for marker in PERMISSION_MARKERS)


def lookup_process_name(pid: int) -> Optional[str]:
    """Process name for display, or None if it cannot be read."""
    try:
        return psutil.Process(pid).name() or None
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        logger.debug(f"Could not read name of PID={pid}")
        return None


class PlatformStrategy(ABC):
    """Resolves and terminates port owners with one OS's native tools."""

    platform: str = ""

    def __init__(self, runner: Runner = run_command, timeout: Optional[float] = COMMAND_TIMEOUT_SECONDS):
        self.runner = runner
        self.timeout = timeout

    @abstractmethod
    def inspect(self, query: PortQuery) -> PortResult:
        """Report the owners of the port without touching them."""

    @abstractmethod
    def terminate(self, query: PortQuery) -> PortResult:
        """Kill the owners of the port."""

    @abstractmethod
    def permission_hint(self, port: int) -> str:
        """Remediation text for permission failures."""

    def run(self, args: Sequence[str]) -> CommandResult:
        return self.runner(args, self.timeout)

    def process_name(self, pid: int) -> Optional[str]:
        return lookup_process_name(pid)

    def kill_failure(self, port: int, result: CommandResult) -> Exception:
        """Map a failed kill command to PermissionDenied or TerminationFailed."""
        if is_permission_failure(result):
            logger.warning(f"Permission denied killing owner of port {port}")
            return PermissionDeniedError(port, self.permission_hint(port), result.error_text)
        logger.warning(f"Kill command failed for port {port}: {result.error_text}")
        return TerminationFailedError(port, result.error_text)


class WindowsStrategy(PlatformStrategy):
    """netstat -ano for lookup, taskkill for termination."""

    platform = "win32"

    def permission_hint(self, port: int) -> str:
        return PERMISSION_HINTS["win32"]

    def find_pids(self, query: PortQuery) -> list[int]:
        result = self.run(NETSTAT_COMMAND)
        if not result.ok:
            raise NoProcessFoundError(query.port, result.error_text)
        if not result.stdout.strip():
            raise NoProcessFoundError(query.port)

        pids = parse_netstat_pids(result.stdout, query.transport.label, query.port)
        if not pids:
            raise NoProcessFoundError(query.port)
        logger.debug(f"netstat: port {query.port}/{query.transport.value} owned by {pids}")
        return pids

    @timed
    def inspect(self, query: PortQuery) -> PortResult:
        pids = self.find_pids(query)
        return PortResult(
            port=query.port,
            platform=self.platform,
            pids=tuple(pids),
            process_name=self.process_name(pids[0]),
            is_inspect_only=True,
        )

    @timed
    def terminate(self, query: PortQuery) -> PortResult:
        pids = self.find_pids(query)
        name = self.process_name(pids[0])

        # One taskkill for every PID; /T takes the child tree down too
        args = [TASKKILL_BINARY, "/F"]
        if query.include_tree:
            args.append("/T")
        for pid in pids:
            args.extend(["/PID", str(pid)])

        result = self.run(args)
        if not result.ok:
            raise self.kill_failure(query.port, result)

        logger.info(f"Killed {pids} on port {query.port}")
        return PortResult(
            port=query.port,
            platform=self.platform,
            terminated=True,
            pids=tuple(pids),
            process_name=name,
            raw_output=result.stdout or None,
            raw_error=result.stderr or None,
        )


class PosixStrategy(PlatformStrategy):
    """lsof for lookup, kill -9 for termination."""

    def __init__(self, runner: Runner = run_command, timeout: Optional[float] = COMMAND_TIMEOUT_SECONDS,
                 platform: Optional[str] = None):
        super().__init__(runner, timeout)
        self.platform = platform or sys.platform

    def permission_hint(self, port: int) -> str:
        return PERMISSION_HINTS["posix"].format(port=port)

    @staticmethod
    def lsof_filter(query: PortQuery) -> list[str]:
        """lsof selection for the port; TCP is limited to listening sockets."""
        args = ["-i", f"{query.transport.value}:{query.port}"]
        if query.transport.value == "tcp":
            args.append("-sTCP:LISTEN")
        return args

    def probe(self, query: PortQuery):
        """Existence check. Returns the lsof rows holding the port."""
        result = self.run([LSOF_BINARY, "-nP", *self.lsof_filter(query)])
        # lsof exits 1 when nothing matches
        if not result.ok:
            detail = None if result.returncode == 1 and not result.stderr.strip() else result.error_text
            raise NoProcessFoundError(query.port, detail)

        rows = parse_lsof_rows(result.stdout)
        if not rows:
            raise NoProcessFoundError(query.port)
        return rows

    def find_pids(self, query: PortQuery) -> list[int]:
        """Every owning PID, e.g. a parent and its SO_REUSEPORT workers."""
        self.probe(query)

        result = self.run([LSOF_BINARY, "-t", *self.lsof_filter(query)])
        pids = parse_pid_lines(result.stdout) if result.ok else []
        if not pids:
            # Owner exited between the two lsof calls
            logger.info(f"Port {query.port} was released before its PIDs could be read")
            raise NoProcessFoundError(query.port, "process exited during lookup")
        logger.debug(f"lsof: port {query.port}/{query.transport.value} owned by {pids}")
        return pids

    @timed
    def inspect(self, query: PortQuery) -> PortResult:
        rows = self.probe(query)
        return PortResult(
            port=query.port,
            platform=self.platform,
            pids=tuple(unique(row.pid for row in rows)),
            process_name=rows[0].command,
            is_inspect_only=True,
        )

    @timed
    def terminate(self, query: PortQuery) -> PortResult:
        pids = self.find_pids(query)
        name = self.process_name(pids[0])

        outputs = []
        if query.include_tree:
            # Workers sharing the port may already have died as children of an earlier PID
            gone: set[int] = set()
            for pid in pids:
                if pid in gone:
                    continue
                killed = self.kill_children(query.port, pid)
                if killed is None:
                    logger.debug(f"PID={pid} exited before it could be killed")
                    continue
                gone.update(killed)
                outputs.append(self.kill(query.port, [pid]))
        else:
            outputs.append(self.kill(query.port, pids))

        logger.info(f"Killed {pids} on port {query.port}")
        stdout = "".join(r.stdout for r in outputs)
        stderr = "".join(r.stderr for r in outputs)
        return PortResult(
            port=query.port,
            platform=self.platform,
            terminated=True,
            pids=tuple(pids),
            process_name=name,
            raw_output=stdout or None,
            raw_error=stderr or None,
        )

    def kill(self, port: int, pids: Sequence[int]) -> CommandResult:
        result = self.run([KILL_BINARY, "-9", *[str(pid) for pid in pids]])
        if not result.ok:
            raise self.kill_failure(port, result)
        return result

    def kill_children(self, port: int, pid: int) -> Optional[set[int]]:
        """
        SIGKILL every descendant of pid.

        Returns the descendant PIDs that are now gone, or None when pid
        itself no longer exists.
        """
        try:
            children = psutil.Process(pid).children(recursive=True)
        except psutil.NoSuchProcess:
            return None
        except psutil.AccessDenied:
            raise PermissionDeniedError(port, self.permission_hint(port), f"cannot list children of PID {pid}")

        gone = set()
        for child in children:
            try:
                child.kill()
            except psutil.NoSuchProcess:
                pass
            except psutil.AccessDenied:
                raise PermissionDeniedError(port, self.permission_hint(port), f"cannot kill child PID {child.pid}")
            gone.add(child.pid)

        logger.debug(f"Killed {len(gone)} children of PID={pid}")
        return gone


def get_strategy(platform: Optional[str] = None, **kwargs) -> PlatformStrategy:
    """Pick the strategy for the running (or given) platform."""
    platform = platform or sys.platform
    if platform == "win32":
        return WindowsStrategy(**kwargs)
    return PosixStrategy(platform=platform, **kwargs)
