"""Provided and required interfaces: the connection points between components.

A provided interface exposes named write commands and event channels. A
required interface consumes them: its functions are bound to the peer's
commands and its event handlers are subscribed to the peer's events when
the registry connects the two.

Commands and events are always delivered through the owning component
(``Component.execute_command`` / ``Component.dispatch_event``) so that task
components can queue them on their own thread.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from armconsole.errors import ComponentError

if TYPE_CHECKING:
    from armconsole.runtime.component import Component

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], None]
CommandHandler = Callable[[Any], Any]


class ExecutionResult(StrEnum):
    """Outcome of invoking a function bound to a peer command."""

    COMMAND_SUCCEEDED = "command_succeeded"
    COMMAND_QUEUED = "command_queued"
    COMMAND_FAILED = "command_failed"
    FUNCTION_NOT_BOUND = "function_not_bound"
    INTERFACE_COMMAND_MISMATCH = "interface_command_mismatch"

    def __bool__(self) -> bool:
        return self in (ExecutionResult.COMMAND_SUCCEEDED, ExecutionResult.COMMAND_QUEUED)


@dataclass
class _Subscription:
    """A required interface's handler attached to one provided event."""

    interface: RequiredInterface
    handler: EventHandler
    queued: bool


class ProvidedInterface:
    """Named commands and events a component exposes to its clients.

    Args:
        name: Interface name, unique among the component's provided interfaces.
        component: Owning component; commands execute in its context.
    """

    def __init__(self, name: str, component: Component) -> None:
        self.name = name
        self.component = component
        self._commands: dict[str, CommandHandler] = {}
        self._events: dict[str, list[_Subscription]] = {}

    def add_command_write(self, name: str, handler: CommandHandler) -> None:
        """Expose ``handler`` as a write command taking one argument."""
        if name in self._commands:
            raise ComponentError(f"{self.component.name}:{self.name} already has command '{name}'")
        self._commands[name] = handler

    def add_event_write(self, name: str) -> Callable[[Any], None]:
        """Declare a write event and return a callable that emits it."""
        if name in self._events:
            raise ComponentError(f"{self.component.name}:{self.name} already has event '{name}'")
        self._events[name] = []

        def emitter(payload: Any) -> None:
            self.emit(name, payload)

        return emitter

    def execute(self, command_name: str, argument: Any) -> ExecutionResult:
        """Run a command through the owning component."""
        handler = self._commands.get(command_name)
        if handler is None:
            return ExecutionResult.INTERFACE_COMMAND_MISMATCH
        return self.component.execute_command(handler, argument)

    def emit(self, event_name: str, payload: Any) -> None:
        """Deliver an event to every connected subscriber, once each."""
        if event_name not in self._events:
            raise ComponentError(f"{self.component.name}:{self.name} has no event '{event_name}'")
        for sub in list(self._events[event_name]):
            owner = sub.interface.component
            if sub.queued:
                owner.dispatch_event(sub.handler, payload)
            else:
                sub.handler(payload)

    def has_command(self, name: str) -> bool:
        return name in self._commands

    def _subscribe(self, event_name: str, sub: _Subscription) -> bool:
        if event_name not in self._events:
            return False
        self._events[event_name].append(sub)
        return True


class Function:
    """Invocation handle on a required interface, bound at connect time."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._provided: ProvidedInterface | None = None

    @property
    def is_bound(self) -> bool:
        return self._provided is not None

    def __call__(self, argument: Any = None) -> ExecutionResult:
        if self._provided is None:
            return ExecutionResult.FUNCTION_NOT_BOUND
        return self._provided.execute(self.name, argument)

    def __repr__(self) -> str:
        target = None
        if self._provided is not None:
            target = f"{self._provided.component.name}:{self._provided.name}"
        return f"Function({self.name!r}, bound_to={target!r})"


class RequiredInterface:
    """Functions and event handlers a component needs from a peer.

    Args:
        name: Interface name, unique among the component's required interfaces.
        component: Owning component; queued event handlers run in its context.
    """

    def __init__(self, name: str, component: Component) -> None:
        self.name = name
        self.component = component
        self._functions: dict[str, Function] = {}
        self._handlers: dict[str, tuple[EventHandler, bool]] = {}
        self.connected_to: ProvidedInterface | None = None

    @property
    def is_connected(self) -> bool:
        return self.connected_to is not None

    def add_function(self, name: str) -> Function:
        """Declare a function; returns the handle the caller keeps."""
        if name in self._functions:
            raise ComponentError(f"{self.component.name}:{self.name} already has function '{name}'")
        function = Function(name)
        self._functions[name] = function
        return function

    def add_event_handler_write(
        self, name: str, handler: EventHandler, queued: bool = True
    ) -> None:
        """Register ``handler`` for the peer's write event ``name``.

        Queued handlers run during the owner's next execution cycle; a
        non-queued handler runs immediately on the emitter's thread.
        """
        self._handlers[name] = (handler, queued)

    def bind(self, provided: ProvidedInterface) -> bool:
        """Bind functions and subscribe handlers to ``provided``.

        Fails without side effects if a declared function has no matching
        command. Handlers for events the peer does not provide are skipped.
        """
        missing = [name for name in self._functions if not provided.has_command(name)]
        if missing:
            logger.error(
                "%s:%s cannot bind to %s:%s, missing commands %s",
                self.component.name,
                self.name,
                provided.component.name,
                provided.name,
                missing,
            )
            return False

        for function in self._functions.values():
            function._provided = provided
        for event_name, (handler, queued) in self._handlers.items():
            sub = _Subscription(interface=self, handler=handler, queued=queued)
            if not provided._subscribe(event_name, sub):
                logger.debug(
                    "%s:%s: peer %s:%s has no event '%s'",
                    self.component.name,
                    self.name,
                    provided.component.name,
                    provided.name,
                    event_name,
                )
        self.connected_to = provided
        return True
