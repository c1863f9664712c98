"""Tests for the component runtime: interfaces, tasks, and the registry."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

import pytest

from armconsole.errors import ComponentError
from armconsole.hardware.mock import MockPID, MockRobotIO
from armconsole.runtime.component import EXEC_IN, EXEC_OUT, Component, Task
from armconsole.runtime.interfaces import ExecutionResult
from armconsole.runtime.manager import ComponentManager, Connection

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class _Server(Task):
    """Provides ``Echo`` with a ``Store`` command and a ``Said`` event."""

    def __init__(self, name: str = "server") -> None:
        super().__init__(name, period=None)
        self.received: list[object] = []
        self.threads: list[str] = []
        echo = self.add_interface_provided("Echo")
        echo.add_command_write("Store", self._store)
        self.say = echo.add_event_write("Said")

    def _store(self, value: object) -> None:
        if value == "bad":
            raise ValueError("bad value")
        self.received.append(value)
        self.threads.append(threading.current_thread().name)


class _Client(Task):
    """Requires ``Echo``; records ``Said`` events and the thread they ran on."""

    def __init__(self, name: str = "client") -> None:
        super().__init__(name, period=None)
        self.heard: list[object] = []
        self.threads: list[str] = []
        echo = self.add_interface_required("Echo")
        self.store = echo.add_function("Store")
        echo.add_event_handler_write("Said", self._heard)

    def _heard(self, value: object) -> None:
        self.heard.append(value)
        self.threads.append(threading.current_thread().name)


@pytest.fixture()
def wired() -> tuple[ComponentManager, _Server, _Client]:
    manager = ComponentManager()
    server, client = _Server(), _Client()
    manager.add_component(server)
    manager.add_component(client)
    assert manager.connect("client", "Echo", "server", "Echo") is not None
    return manager, server, client


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------


def test_execution_result_truthiness() -> None:
    assert ExecutionResult.COMMAND_SUCCEEDED
    assert ExecutionResult.COMMAND_QUEUED
    assert not ExecutionResult.COMMAND_FAILED
    assert not ExecutionResult.FUNCTION_NOT_BOUND
    assert not ExecutionResult.INTERFACE_COMMAND_MISMATCH


def test_duplicate_interfaces_return_none() -> None:
    comp = Component("c")
    assert comp.add_interface_required("A") is not None
    assert comp.add_interface_required("A") is None
    assert comp.add_interface_provided("A") is not None
    assert comp.add_interface_provided("A") is None


def test_remove_interface_required() -> None:
    comp = Component("c")
    comp.add_interface_required("A")
    assert comp.remove_interface_required("A")
    assert comp.get_interface_required("A") is None
    assert not comp.remove_interface_required("A")


def test_unbound_function() -> None:
    client = _Client()
    assert client.store("x") == ExecutionResult.FUNCTION_NOT_BOUND


def test_inline_command_and_event(wired: tuple[ComponentManager, _Server, _Client]) -> None:
    """Components that are not running execute on the caller's thread."""
    _, server, client = wired

    assert client.store(1) == ExecutionResult.COMMAND_SUCCEEDED
    assert server.received == [1]

    server.say("hello")
    assert client.heard == ["hello"]


def test_failing_command_returns_failed(wired: tuple[ComponentManager, _Server, _Client]) -> None:
    _, server, client = wired
    result = client.store("bad")
    assert result == ExecutionResult.COMMAND_FAILED
    assert not result
    assert server.received == []


def test_emit_unknown_event_raises() -> None:
    server = _Server()
    with pytest.raises(ComponentError):
        server.get_interface_provided("Echo").emit("Nope", 1)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def test_add_component_duplicate_raises() -> None:
    manager = ComponentManager()
    manager.add_component(Component("a"))
    with pytest.raises(ComponentError):
        manager.add_component(Component("a"))
    assert manager.component_names == ["a"]


def test_connect_records_connection(wired: tuple[ComponentManager, _Server, _Client]) -> None:
    manager, _, client = wired
    assert manager.connections == [Connection("client", "Echo", "server", "Echo")]
    assert str(manager.connections[0]) == "client:Echo -> server:Echo"
    assert client.get_interface_required("Echo").is_connected


def test_connect_twice_fails(wired: tuple[ComponentManager, _Server, _Client]) -> None:
    manager, _, _ = wired
    assert manager.connect("client", "Echo", "server", "Echo") is None
    assert len(manager.connections) == 1


def test_connect_unknown_component_or_interface() -> None:
    manager = ComponentManager()
    manager.add_component(_Client())
    manager.add_component(_Server())
    assert manager.connect("client", "Echo", "ghost", "Echo") is None
    assert manager.connect("client", "Nope", "server", "Echo") is None
    assert manager.connect("client", "Echo", "server", "Nope") is None
    assert manager.connections == []


def test_connect_missing_command_leaves_function_unbound() -> None:
    manager = ComponentManager()
    client = _Client()
    other = Component("other")
    other.add_interface_provided("Echo")
    manager.add_component(client)
    manager.add_component(other)

    assert manager.connect("client", "Echo", "other", "Echo") is None
    assert not client.store.is_bound
    assert not client.get_interface_required("Echo").is_connected


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


def test_running_task_executes_commands_on_its_thread(
    wired: tuple[ComponentManager, _Server, _Client],
) -> None:
    """The caller blocks until the server's own thread ran the command."""
    manager, server, client = wired
    server.start()
    try:
        assert client.store(42) == ExecutionResult.COMMAND_SUCCEEDED
        assert server.received == [42]
        assert server.threads == ["Task-server"]
    finally:
        manager.kill_all()


def test_running_task_queues_events(wired: tuple[ComponentManager, _Server, _Client]) -> None:
    manager, server, client = wired
    client.start()
    try:
        server.say("a")
        server.say("b")
        assert _wait_for(lambda: client.heard == ["a", "b"])
        assert set(client.threads) == {"Task-client"}
    finally:
        manager.kill_all()


def test_kill_stops_thread() -> None:
    task = Task("t", period=0.01)
    task.start()
    assert task.is_running
    task.kill()
    assert not task.is_running


class _SlowCleanupServer(_Server):
    """Server whose cleanup takes long enough to call into it meanwhile."""

    def __init__(self) -> None:
        super().__init__()
        self.cleaning = threading.Event()

    def cleanup(self) -> None:
        self.cleaning.set()
        time.sleep(0.3)


def test_command_during_cleanup_does_not_block() -> None:
    manager = ComponentManager()
    server, client = _SlowCleanupServer(), _Client()
    manager.add_component(server)
    manager.add_component(client)
    assert manager.connect("client", "Echo", "server", "Echo") is not None
    server.start()

    stopper = threading.Thread(target=server.kill)
    stopper.start()
    assert server.cleaning.wait(2.0)

    results: list[ExecutionResult] = []
    caller = threading.Thread(target=lambda: results.append(client.store(7)))
    caller.start()
    caller.join(timeout=2.0)
    stopper.join(timeout=2.0)

    assert not caller.is_alive()
    assert results == [ExecutionResult.COMMAND_SUCCEEDED]
    assert server.received == [7]


def test_commands_queued_before_stop_are_released() -> None:
    """Every command accepted while running gets a result, even across kill."""
    manager = ComponentManager()
    server, client = _Server(), _Client()
    manager.add_component(server)
    manager.add_component(client)
    assert manager.connect("client", "Echo", "server", "Echo") is not None
    server.start()

    results: list[ExecutionResult] = []
    callers = [
        threading.Thread(target=lambda i=i: results.append(client.store(i))) for i in range(20)
    ]
    for caller in callers:
        caller.start()
    server.kill()
    for caller in callers:
        caller.join(timeout=2.0)

    assert not any(caller.is_alive() for caller in callers)
    assert len(results) == 20
    assert sorted(server.received) == list(range(20))


def test_pid_enable_command() -> None:
    manager = ComponentManager()
    pid = MockPID("arm-PID", period=0.01)
    caller = Component("caller")
    controller = caller.add_interface_required("Controller")
    enable = controller.add_function("Enable")
    statuses: list[str] = []
    controller.add_event_handler_write("Status", statuses.append)
    manager.add_component(pid)
    manager.add_component(caller)
    assert manager.connect("caller", "Controller", "arm-PID", "Controller") is not None

    assert enable(True) == ExecutionResult.COMMAND_SUCCEEDED
    assert pid.enabled
    assert statuses == ["arm-PID: enabled"]


def test_exec_out_triggers_pid_cycles() -> None:
    """A PID whose ExecIn is connected runs when the IO cycles."""
    manager = ComponentManager()
    io = MockRobotIO("io", period=0.01)
    pid = MockPID("arm-PID", period=100.0)
    manager.add_component(io)
    manager.add_component(pid)
    assert manager.connect(pid.name, EXEC_IN, io.name, EXEC_OUT) is not None
    assert pid.is_externally_triggered

    manager.start_all()
    try:
        assert _wait_for(lambda: pid.cycles >= 3)
    finally:
        manager.kill_all()
