"""
PortClear Configuration
"""

from pathlib import Path

APP_NAME = "portclear"
VERSION = "1.0.1"

# Port bounds
MIN_PORT = 1
MAX_PORT = 65535

# Default transport when none is given
DEFAULT_METHOD = "tcp"
METHODS = ("tcp", "udp")

# Seconds before a diagnostic or kill command is abandoned
COMMAND_TIMEOUT_SECONDS = 10

# Upper bound on ports resolved in parallel by the CLI
MAX_WORKERS = 8

# Operations slower than this get logged as warnings
SLOW_OPERATION_MS = 2000

# Logging
LOG_DIR = Path.home() / ".portclear" / "logs"

# External tools
NETSTAT_COMMAND = ["netstat", "-ano"]
LSOF_BINARY = "lsof"
TASKKILL_BINARY = "taskkill"
KILL_BINARY = "kill"

# Remediation hints appended to permission errors
PERMISSION_HINTS = {
    "win32": "Try running as Administrator",
    "posix": "Try running with sudo: sudo portclear {port}",
}
