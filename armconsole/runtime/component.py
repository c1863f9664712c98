"""Components and tasks: the independently scheduled units of the rig.

A ``Component`` owns named provided/required interfaces and executes
commands and events on the caller's thread. A ``Task`` adds a mailbox and
a thread of its own: while it is running, commands from other threads are
queued and the caller blocks until the task has executed them, and events
are queued until the task's next cycle.

Thread model:
    - Periodic tasks (``period`` seconds) wake on their timer or on a signal.
    - Signal-driven tasks (``period=None``) wake only when something is
      queued for them or when ``wake()`` is called.
    - A task whose ``ExecIn`` interface is connected runs when the peer's
      ``ExecOut`` event fires instead of on its own timer.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future
from typing import Any

from armconsole.runtime.interfaces import (
    CommandHandler,
    EventHandler,
    ExecutionResult,
    ProvidedInterface,
    RequiredInterface,
)

logger = logging.getLogger(__name__)

EXEC_IN = "ExecIn"
EXEC_OUT = "ExecOut"
EXEC_EVENT = "Execute"


class Component:
    """A named unit with provided and required interfaces.

    Args:
        name: Component name, unique within a ``ComponentManager``.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.config_file: str | None = None
        self._provided: dict[str, ProvidedInterface] = {}
        self._required: dict[str, RequiredInterface] = {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    # --- Interfaces ---

    @property
    def interfaces_provided(self) -> dict[str, ProvidedInterface]:
        return dict(self._provided)

    @property
    def interfaces_required(self) -> dict[str, RequiredInterface]:
        return dict(self._required)

    def add_interface_provided(self, name: str) -> ProvidedInterface | None:
        """Create a provided interface, or return None if the name is taken."""
        if name in self._provided:
            logger.error("%s: provided interface '%s' already exists", self.name, name)
            return None
        interface = ProvidedInterface(name, self)
        self._provided[name] = interface
        return interface

    def add_interface_required(self, name: str) -> RequiredInterface | None:
        """Create a required interface, or return None if the name is taken."""
        if name in self._required:
            logger.error("%s: required interface '%s' already exists", self.name, name)
            return None
        interface = RequiredInterface(name, self)
        self._required[name] = interface
        return interface

    def remove_interface_required(self, name: str) -> bool:
        """Remove an unconnected required interface."""
        interface = self._required.get(name)
        if interface is None or interface.is_connected:
            return False
        del self._required[name]
        return True

    def get_interface_provided(self, name: str) -> ProvidedInterface | None:
        return self._provided.get(name)

    def get_interface_required(self, name: str) -> RequiredInterface | None:
        return self._required.get(name)

    # --- Lifecycle hooks ---

    def configure(self, filename: str = "") -> None:
        """Record the component's configuration file (opaque to the runtime)."""
        self.config_file = filename

    def startup(self) -> None:
        """Called once before the first cycle."""

    def run(self) -> None:
        """Called on every cycle."""

    def cleanup(self) -> None:
        """Called once after the last cycle."""

    @property
    def is_running(self) -> bool:
        return False

    def start(self) -> None:
        """Plain components have no thread; only ``startup`` runs."""
        self.startup()

    def kill(self) -> None:
        self.cleanup()

    # --- Delivery ---

    def execute_command(self, handler: CommandHandler, argument: Any) -> ExecutionResult:
        """Execute a command synchronously on the caller's thread."""
        try:
            handler(argument)
        except Exception as exc:
            logger.error("%s: command %s failed: %s", self.name, _handler_name(handler), exc)
            return ExecutionResult.COMMAND_FAILED
        return ExecutionResult.COMMAND_SUCCEEDED

    def dispatch_event(self, handler: EventHandler, payload: Any) -> None:
        """Run an event handler on the caller's thread."""
        try:
            handler(payload)
        except Exception as exc:
            logger.error("%s: event handler %s failed: %s", self.name, _handler_name(handler), exc)


class Task(Component):
    """A component with its own thread and command/event mailbox.

    Args:
        name: Component name.
        period: Cycle period in seconds, or None for a signal-driven task.
    """

    def __init__(self, name: str, period: float | None = None) -> None:
        super().__init__(name)
        self._period = period
        self._commands: queue.SimpleQueue[tuple[CommandHandler, Any, Future]] = queue.SimpleQueue()
        self._events: queue.SimpleQueue[tuple[EventHandler, Any]] = queue.SimpleQueue()
        self._wakeup = threading.Event()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        # Guards _accepting so a caller never queues after the final drain.
        self._mailbox_lock = threading.Lock()
        self._accepting = False

    @property
    def period(self) -> float | None:
        return self._period

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def is_externally_triggered(self) -> bool:
        """Whether the task is clocked by a peer's ``ExecOut`` event."""
        exec_in = self._required.get(EXEC_IN)
        return exec_in is not None and exec_in.is_connected

    def add_exec_in_interface(self) -> RequiredInterface | None:
        """Allow a peer's ``ExecOut`` to trigger this task's cycles."""
        exec_in = self.add_interface_required(EXEC_IN)
        if exec_in is not None:
            exec_in.add_event_handler_write(EXEC_EVENT, lambda _: self.wake(), queued=False)
        return exec_in

    # --- Thread control ---

    def start(self) -> None:
        """Start the task thread. Idempotent."""
        if self.is_running:
            return
        self._stop_event.clear()
        with self._mailbox_lock:
            self._accepting = True
        self._thread = threading.Thread(
            target=self._task_loop,
            daemon=True,
            name=f"Task-{self.name}",
        )
        self._thread.start()
        logger.info("Started task %s (period=%s)", self.name, self._period)

    def kill(self, timeout: float = 2.0) -> None:
        """Stop the task thread after its current cycle."""
        if not self.is_running:
            return
        self._stop_event.set()
        self._wakeup.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        logger.info("Stopped task %s", self.name)

    def wake(self) -> None:
        """Signal the task to run a cycle."""
        self._wakeup.set()

    def _task_loop(self) -> None:
        try:
            self.startup()
            while not self._stop_event.is_set():
                timeout = None if self.is_externally_triggered else self._period
                self._wakeup.wait(timeout=timeout)
                self._wakeup.clear()
                if self._stop_event.is_set():
                    break
                try:
                    self.run()
                except Exception as exc:
                    logger.error("%s: run failed: %s", self.name, exc)
        finally:
            # From here on callers execute inline; release those already queued.
            with self._mailbox_lock:
                self._accepting = False
            self.process_queued_commands()
            self.process_queued_events()
            self.cleanup()

    def _on_own_thread(self) -> bool:
        return threading.current_thread() is self._thread

    # --- Delivery ---

    def execute_command(self, handler: CommandHandler, argument: Any) -> ExecutionResult:
        """Queue the command and block until the task has executed it.

        There is no timeout: an unresponsive task blocks its caller. Once
        the task has begun stopping, commands execute on the caller's thread.
        """
        future: Future[ExecutionResult] | None = None
        if not self._on_own_thread():
            with self._mailbox_lock:
                if self._accepting:
                    future = Future()
                    self._commands.put((handler, argument, future))
        if future is None:
            return super().execute_command(handler, argument)
        self._wakeup.set()
        return future.result()

    def dispatch_event(self, handler: EventHandler, payload: Any) -> None:
        """Queue the event for the task's next cycle."""
        queued = False
        if not self._on_own_thread():
            with self._mailbox_lock:
                if self._accepting:
                    self._events.put((handler, payload))
                    queued = True
        if not queued:
            super().dispatch_event(handler, payload)
            return
        self._wakeup.set()

    def process_queued_commands(self) -> int:
        """Execute every queued command; returns how many ran."""
        count = 0
        while True:
            try:
                handler, argument, future = self._commands.get_nowait()
            except queue.Empty:
                return count
            future.set_result(super().execute_command(handler, argument))
            count += 1

    def process_queued_events(self) -> int:
        """Run every queued event handler; returns how many ran."""
        count = 0
        while True:
            try:
                handler, payload = self._events.get_nowait()
            except queue.Empty:
                return count
            super().dispatch_event(handler, payload)
            count += 1

    def run(self) -> None:
        self.process_queued_commands()
        self.process_queued_events()


def _handler_name(handler: Any) -> str:
    return getattr(handler, "__qualname__", repr(handler))
