"""Blocking child-process runner shared by the platform strategies."""

import subprocess
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from ..config import COMMAND_TIMEOUT_SECONDS
from ..utils.logging_config import get_logger, PerfTimer

logger = get_logger('commands')

# Return codes used when the command never produced one
RC_MISSING = 127
RC_TIMEOUT = 124
RC_OS_ERROR = 126


@dataclass
class CommandResult:
    """Captured outcome of one external command."""
    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    missing: bool = False
    permission_error: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def error_text(self) -> str:
        """Best description of what went wrong, for error details."""
        return (self.stderr or self.stdout or f"exit status {self.returncode}").strip()


Runner = Callable[[Sequence[str], Optional[float]], CommandResult]


def run_command(args: Sequence[str], timeout: Optional[float] = COMMAND_TIMEOUT_SECONDS) -> CommandResult:
    """
    Run a command without a shell and capture its text output.

    Never raises for tool failures: a missing binary, an OS error or a
    timeout is folded into the returned CommandResult.
    """
    argv = tuple(str(a) for a in args)
    try:
        with PerfTimer(" ".join(argv), logger):
            proc = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
    except FileNotFoundError:
        logger.debug(f"Command not found: {argv[0]}")
        return CommandResult(argv, RC_MISSING, stderr=f"{argv[0]}: command not found", missing=True)
    except subprocess.TimeoutExpired:
        logger.warning(f"Command timed out after {timeout}s: {' '.join(argv)}")
        return CommandResult(argv, RC_TIMEOUT, stderr=f"timed out after {timeout}s", timed_out=True)
    except PermissionError as e:
        logger.debug(f"Permission error running {argv[0]}: {e}")
        return CommandResult(argv, RC_OS_ERROR, stderr=str(e), permission_error=True)
    except OSError as e:
        logger.debug(f"OS error running {argv[0]}: {e}")
        return CommandResult(argv, RC_OS_ERROR, stderr=str(e))

    logger.debug(f"{argv[0]} exited with {proc.returncode}")
    return CommandResult(argv, proc.returncode, proc.stdout or "", proc.stderr or "")
