import socket
import subprocess
import sys
import time

import pytest

from portclear.core.commands import CommandResult
from portclear.core.errors import NoProcessFoundError
from portclear.core.models import PortResult
from portclear.core.strategies import WindowsStrategy


NETSTAT_OUTPUT = """
Active Connections

  Proto  Local Address          Foreign Address        State           PID
  TCP    0.0.0.0:135            0.0.0.0:0              LISTENING       1032
  TCP    0.0.0.0:8080           0.0.0.0:0              LISTENING       7777
  TCP    0.0.0.0:3000           0.0.0.0:0              LISTENING       4412
  TCP    127.0.0.1:3000         127.0.0.1:51234        ESTABLISHED     4412
  TCP    127.0.0.1:51234        127.0.0.1:3000         ESTABLISHED     9001
  TCP    127.0.0.1:3000         127.0.0.1:51999        TIME_WAIT       0
  TCP    [::]:3000              [::]:0                 LISTENING       4413
  TCP    [::]:80                [::]:0                 LISTENING       4
  UDP    0.0.0.0:5353           *:*                                    2280
  UDP    [::]:5353              *:*                                    2281
"""

LSOF_OUTPUT = """\
COMMAND   PID USER   FD   TYPE             DEVICE SIZE/OFF NODE NAME
node    41233  dev   23u  IPv4 0x1a2b3c4d5e6f7a8b      0t0  TCP *:3000 (LISTEN)
node    41233  dev   24u  IPv6 0x1a2b3c4d5e6f7a8c      0t0  TCP *:3000 (LISTEN)
node    41240  dev   23u  IPv4 0x1a2b3c4d5e6f7a8d      0t0  TCP *:3000 (LISTEN)
"""


class FakeRunner:
    """Stands in for run_command: canned results keyed by argv[0] and flags."""

    def __init__(self):
        self.calls = []
        self.responses = []

    def on(self, predicate, result):
        self.responses.append((predicate, result))
        return self

    def __call__(self, args, timeout=None):
        args = tuple(str(a) for a in args)
        self.calls.append(args)
        for predicate, result in self.responses:
            if predicate(args):
                if isinstance(result, CommandResult):
                    return result
                return CommandResult(args, *result)
        return CommandResult(args, 1, "", "")

    def commands(self, name):
        return [c for c in self.calls if c[0] == name]


def cmd(name, *flags):
    """Predicate matching argv starting with name and containing every flag."""
    def predicate(args):
        return args[0] == name and all(flag in args for flag in flags)
    return predicate


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def no_psutil_names(monkeypatch):
    monkeypatch.setattr("portclear.core.strategies.lookup_process_name", lambda pid: None)


LISTENER_CODE = """
import socket, sys, time
s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
s.bind(("127.0.0.1", 0))
s.listen(5)
print(s.getsockname()[1], flush=True)
while True:
    time.sleep(1)
"""


def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def can_bind(port):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind(("127.0.0.1", port))
        except OSError:
            return False
        return True


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.1)
    return predicate()


@pytest.fixture
def listener():
    """A child python process listening on a TCP port. Yields (proc, port)."""
    proc = subprocess.Popen(
        [sys.executable, "-c", LISTENER_CODE],
        stdout=subprocess.PIPE,
        text=True,
    )
    port = int(proc.stdout.readline().strip())
    yield proc, port
    if proc.poll() is None:
        proc.kill()
    proc.wait(timeout=5)
    proc.stdout.close()


class RecordingStrategy(WindowsStrategy):
    """Records dispatched queries. Port 62345 is never bound."""

    UNBOUND = 62345

    def __init__(self):
        super().__init__(runner=None)
        self.seen = []

    def inspect(self, query):
        self.seen.append(("inspect", query))
        if query.port == self.UNBOUND:
            raise NoProcessFoundError(query.port)
        return PortResult(port=query.port, platform=self.platform, pids=(1,), process_name="node",
                          is_inspect_only=True)

    def terminate(self, query):
        self.seen.append(("terminate", query))
        if query.port == self.UNBOUND:
            raise NoProcessFoundError(query.port)
        return PortResult(port=query.port, platform=self.platform, pids=(1,), terminated=True)
