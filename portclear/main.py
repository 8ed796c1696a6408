#!/usr/bin/env python3
"""
PortClear - Cross-platform Port Clearing Tool

Kills (or lists) whatever process is bound to a TCP/UDP port.
Features:
- Single ports, comma-separated lists and ranges
- Windows (netstat/taskkill) and POSIX (lsof/kill)
- Process tree killing
- JSON output for scripting
"""

import logging
import sys
from typing import Optional, Sequence

from .cli import run
from .utils.logging_config import get_log_file_path, setup_logging


def _is_verbose(argv: Sequence[str]) -> bool:
    return "-v" in argv or "--verbose" in argv


def _console_level(argv: Sequence[str]) -> int:
    if _is_verbose(argv):
        return logging.INFO
    if "-q" in argv or "--quiet" in argv:
        return logging.ERROR
    return logging.WARNING


def main(argv: Optional[Sequence[str]] = None):
    """Main entry point for PortClear."""
    argv = list(sys.argv[1:] if argv is None else argv)

    # Initialize logging FIRST; only verbose runs keep a log file
    verbose = _is_verbose(argv)
    logger = setup_logging(console_level=_console_level(argv), log_to_file=verbose)
    if verbose:
        logger.info(f"Log file: {get_log_file_path()}")
    logger.debug(f"PortClear starting up with argv={argv}")

    try:
        exit_code = run(argv)
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        exit_code = 130
    except SystemExit as e:
        # argparse exits for --help, --version and usage errors
        exit_code = e.code if isinstance(e.code, int) else 1
    except Exception:
        logger.exception("Unexpected error")
        exit_code = 1

    logger.debug(f"PortClear shutting down (exit code: {exit_code})")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
