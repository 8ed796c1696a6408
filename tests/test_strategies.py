import psutil
import pytest

from portclear.core.commands import CommandResult
from portclear.core.errors import NoProcessFoundError, PermissionDeniedError, TerminationFailedError
from portclear.core.models import PortQuery
from portclear.core.strategies import (
    PosixStrategy, WindowsStrategy, get_strategy, is_permission_failure, lookup_process_name,
)

from .conftest import LSOF_OUTPUT, NETSTAT_OUTPUT, cmd


# --------------------------- Windows ---------------------------

@pytest.fixture
def windows(runner, no_psutil_names):
    runner.on(cmd("netstat"), (0, NETSTAT_OUTPUT, ""))
    return WindowsStrategy(runner=runner)


def test_windows_inspect(windows, runner):
    result = windows.inspect(PortQuery.build(3000, list_only=True))
    assert result.pids == (4412, 4413)
    assert result.is_inspect_only
    assert not result.terminated
    assert result.platform == "win32"
    assert runner.commands("taskkill") == []


def test_windows_terminate_single_command(windows, runner):
    runner.on(cmd("taskkill"), (0, "SUCCESS: terminated", ""))
    result = windows.terminate(PortQuery.build(3000))

    assert result.terminated
    assert result.raw_output == "SUCCESS: terminated"
    assert runner.commands("taskkill") == [("taskkill", "/F", "/PID", "4412", "/PID", "4413")]


def test_windows_tree_kill_flag(windows, runner):
    runner.on(cmd("taskkill"), (0, "", ""))
    windows.terminate(PortQuery.build(5353, "udp", tree=True))
    assert runner.commands("taskkill") == [("taskkill", "/F", "/T", "/PID", "2280", "/PID", "2281")]


def test_windows_no_match(windows):
    with pytest.raises(NoProcessFoundError) as exc:
        windows.terminate(PortQuery.build(62345))
    assert "No process running on port 62345" in str(exc.value)


def test_windows_empty_netstat(runner, no_psutil_names):
    runner.on(cmd("netstat"), (0, "", ""))
    with pytest.raises(NoProcessFoundError):
        WindowsStrategy(runner=runner).inspect(PortQuery.build(3000, list_only=True))


def test_windows_netstat_failure_is_no_process(runner, no_psutil_names):
    runner.on(cmd("netstat"), CommandResult(("netstat",), 124, stderr="timed out after 10s", timed_out=True))
    with pytest.raises(NoProcessFoundError) as exc:
        WindowsStrategy(runner=runner).terminate(PortQuery.build(3000))
    assert exc.value.detail == "timed out after 10s"


def test_windows_access_denied(windows, runner):
    runner.on(cmd("taskkill"), (1, "", "ERROR: The process with PID 4412 could not be terminated.\n"
                                        "Reason: Access is denied."))
    with pytest.raises(PermissionDeniedError) as exc:
        windows.terminate(PortQuery.build(3000))
    assert "Administrator" in str(exc.value)
    assert "Access is denied" in exc.value.detail


def test_windows_other_kill_failure(windows, runner):
    runner.on(cmd("taskkill"), (128, "", "ERROR: The process \"4412\" not found."))
    with pytest.raises(TerminationFailedError) as exc:
        windows.terminate(PortQuery.build(3000))
    assert str(exc.value).startswith("Failed to kill process on port 3000: ERROR")


# --------------------------- POSIX ---------------------------

def lsof_listing(runner, output=LSOF_OUTPUT):
    runner.on(lambda a: a[0] == "lsof" and "-t" not in a, (0, output, ""))


@pytest.fixture
def posix(runner, no_psutil_names):
    return PosixStrategy(runner=runner, platform="linux")


def test_posix_lsof_filter():
    assert PosixStrategy.lsof_filter(PortQuery.build(3000)) == ["-i", "tcp:3000", "-sTCP:LISTEN"]
    assert PosixStrategy.lsof_filter(PortQuery.build(53, "udp")) == ["-i", "udp:53"]


def test_posix_inspect_reads_first_row(posix, runner):
    lsof_listing(runner)
    result = posix.inspect(PortQuery.build(3000, list_only=True))

    assert result.process_name == "node"
    assert result.pids == (41233, 41240)
    assert result.is_inspect_only
    assert result.platform == "linux"
    assert runner.commands("kill") == []


def test_posix_inspect_nothing_bound(posix, runner):
    # lsof exits 1 with no output when nothing matches
    with pytest.raises(NoProcessFoundError) as exc:
        posix.inspect(PortQuery.build(62345, list_only=True))
    assert exc.value.detail is None


def test_posix_missing_lsof(posix, runner):
    runner.on(cmd("lsof"), CommandResult(("lsof",), 127, stderr="lsof: command not found", missing=True))
    with pytest.raises(NoProcessFoundError) as exc:
        posix.terminate(PortQuery.build(3000))
    assert "not found" in exc.value.detail


def test_posix_terminate_combined_kill(posix, runner):
    lsof_listing(runner)
    runner.on(cmd("lsof", "-t"), (0, "41233\n41240\n41233\n", ""))
    runner.on(cmd("kill"), (0, "", ""))

    result = posix.terminate(PortQuery.build(3000))

    assert result.terminated
    assert result.pids == (41233, 41240)
    assert result.primary_pid is None
    assert runner.commands("kill") == [("kill", "-9", "41233", "41240")]


def test_posix_race_between_probes(posix, runner):
    lsof_listing(runner)
    runner.on(cmd("lsof", "-t"), (1, "", ""))

    with pytest.raises(NoProcessFoundError):
        posix.terminate(PortQuery.build(3000))
    assert runner.commands("kill") == []


def test_posix_permission_denied(posix, runner):
    lsof_listing(runner)
    runner.on(cmd("lsof", "-t"), (0, "41233\n", ""))
    runner.on(cmd("kill"), (1, "", "kill: (41233) - Operation not permitted\n"))

    with pytest.raises(PermissionDeniedError) as exc:
        posix.terminate(PortQuery.build(3000))
    assert "sudo portclear 3000" in str(exc.value)


def test_posix_other_kill_failure(posix, runner):
    lsof_listing(runner)
    runner.on(cmd("lsof", "-t"), (0, "41233\n", ""))
    runner.on(cmd("kill"), (1, "", "kill: (41233) - No such process\n"))

    with pytest.raises(TerminationFailedError) as exc:
        posix.terminate(PortQuery.build(3000))
    assert "No such process" in str(exc.value)


class FakeChild:
    def __init__(self, pid, error=None):
        self.pid = pid
        self.error = error
        self.killed = False

    def kill(self):
        if self.error:
            raise self.error
        self.killed = True


class FakeProcess:
    def __init__(self, children):
        self._children = children

    def children(self, recursive=False):
        return self._children


def test_posix_tree_kills_children_before_parent(posix, runner, monkeypatch):
    lsof_listing(runner)
    runner.on(cmd("lsof", "-t"), (0, "41233\n41240\n", ""))
    runner.on(cmd("kill"), (0, "", ""))

    families = {
        41233: [FakeChild(50001), FakeChild(50002, psutil.NoSuchProcess(50002))],
        41240: [],
    }
    monkeypatch.setattr("portclear.core.strategies.psutil.Process", lambda pid: FakeProcess(families[pid]))

    result = posix.terminate(PortQuery.build(3000, tree=True))

    assert result.terminated
    assert families[41233][0].killed
    assert runner.commands("kill") == [("kill", "-9", "41233"), ("kill", "-9", "41240")]


def test_posix_tree_child_access_denied(posix, runner, monkeypatch):
    lsof_listing(runner)
    runner.on(cmd("lsof", "-t"), (0, "41233\n", ""))
    runner.on(cmd("kill"), (0, "", ""))
    children = [FakeChild(50001, psutil.AccessDenied(50001))]
    monkeypatch.setattr("portclear.core.strategies.psutil.Process", lambda pid: FakeProcess(children))

    with pytest.raises(PermissionDeniedError):
        posix.terminate(PortQuery.build(3000, tree=True))
    assert runner.commands("kill") == []


def test_name_lookup_is_best_effort(runner, monkeypatch):
    def gone(pid):
        raise psutil.NoSuchProcess(pid)
    monkeypatch.setattr("portclear.core.strategies.psutil.Process", gone)
    assert lookup_process_name(41233) is None

    runner.on(cmd("netstat"), (0, NETSTAT_OUTPUT, ""))
    result = WindowsStrategy(runner=runner).inspect(PortQuery.build(3000, list_only=True))
    assert result.process_name is None
    assert result.pids == (4412, 4413)


# --------------------------- Dispatch ---------------------------

def test_get_strategy_by_platform():
    assert isinstance(get_strategy("win32"), WindowsStrategy)
    posix = get_strategy("darwin")
    assert isinstance(posix, PosixStrategy)
    assert posix.platform == "darwin"


def test_permission_detection():
    assert is_permission_failure(CommandResult(("kill",), 1, stderr="Operation not permitted"))
    assert is_permission_failure(CommandResult(("taskkill",), 1, stdout="Access is denied."))
    assert is_permission_failure(CommandResult(("kill",), 126, permission_error=True))
    assert not is_permission_failure(CommandResult(("kill",), 1, stderr="No such process"))


def test_windows_taskkill_timeout(windows, runner):
    runner.on(cmd("taskkill"), CommandResult(("taskkill",), 124, stderr="timed out after 10s", timed_out=True))
    with pytest.raises(TerminationFailedError) as exc:
        windows.terminate(PortQuery.build(3000))
    assert "timed out" in exc.value.detail


def test_posix_kill_timeout(posix, runner):
    lsof_listing(runner)
    runner.on(cmd("lsof", "-t"), (0, "41233\n", ""))
    runner.on(cmd("kill"), CommandResult(("kill",), 124, stderr="timed out after 10s", timed_out=True))
    with pytest.raises(TerminationFailedError) as exc:
        posix.terminate(PortQuery.build(3000))
    assert "timed out" in exc.value.detail


def test_posix_tree_skips_workers_killed_with_parent(posix, runner, monkeypatch):
    # Prefork server: 41240 is a worker forked by 41233, both hold the socket
    lsof_listing(runner)
    runner.on(cmd("lsof", "-t"), (0, "41233\n41240\n", ""))
    runner.on(cmd("kill"), (0, "", ""))
    worker = FakeChild(41240)
    processes = {41233: FakeProcess([worker])}

    def process(pid):
        if pid not in processes:
            raise psutil.NoSuchProcess(pid)
        return processes[pid]
    monkeypatch.setattr("portclear.core.strategies.psutil.Process", process)

    result = posix.terminate(PortQuery.build(3000, tree=True))

    assert worker.killed
    assert result.terminated
    assert result.pids == (41233, 41240)
    assert runner.commands("kill") == [("kill", "-9", "41233")]


def test_posix_tree_skips_owner_that_already_exited(posix, runner, monkeypatch):
    lsof_listing(runner)
    runner.on(cmd("lsof", "-t"), (0, "41233\n41240\n", ""))
    runner.on(cmd("kill"), (0, "", ""))

    def process(pid):
        if pid == 41233:
            raise psutil.NoSuchProcess(pid)
        return FakeProcess([])
    monkeypatch.setattr("portclear.core.strategies.psutil.Process", process)

    result = posix.terminate(PortQuery.build(3000, tree=True))

    assert result.terminated
    assert runner.commands("kill") == [("kill", "-9", "41240")]
