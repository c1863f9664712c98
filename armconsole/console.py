"""Console: single control surface for every arm of the rig.

The console owns the ordered list of registered arms. It provides the
``Main`` interface: one ``SetRobotControlState`` command that is broadcast
to every arm, and ``Error``/``Warning``/``Status`` events that carry every
message the arms, their PIDs, and their IO report.

Registration (``add_arm``) must complete before the console task is
started; the arm list is only ever appended to.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from typing import Any

from armconsole.errors import CommandDeliveryError, ConfigurationError, WiringError
from armconsole.hardware.arm import ArmDescriptor
from armconsole.hardware.types import (
    CONTROLLER_INTERFACE,
    ERROR_EVENT,
    MAIN_INTERFACE,
    MESSAGE_EVENTS,
    ROBOT_INTERFACE,
    SET_ROBOT_CONTROL_STATE,
    STATUS_EVENT,
    WARNING_EVENT,
    ArmPhase,
    ArmType,
)
from armconsole.runtime.component import Component, Task
from armconsole.runtime.interfaces import ExecutionResult, RequiredInterface
from armconsole.runtime.manager import ComponentManager

logger = logging.getLogger(__name__)


class Console(Task):
    """Signal-driven task that registers arms and drives them as one.

    The console adds itself to ``manager`` on construction.

    Args:
        name: Component name of the console.
        manager: Registry that owns the arm, PID, and IO components.
    """

    def __init__(self, name: str, manager: ComponentManager) -> None:
        super().__init__(name, period=None)
        self._manager = manager
        self._arms: list[ArmDescriptor] = []

        main = self.add_interface_provided(MAIN_INTERFACE)
        main.add_command_write(SET_ROBOT_CONTROL_STATE, self.set_robot_control_state)
        self._error_event = main.add_event_write(ERROR_EVENT)
        self._warning_event = main.add_event_write(WARNING_EVENT)
        self._status_event = main.add_event_write(STATUS_EVENT)

        manager.add_component(self)

    @property
    def arms(self) -> list[ArmDescriptor]:
        """Registered arms in registration order."""
        return list(self._arms)

    def get_arm(self, name: str) -> ArmDescriptor | None:
        for arm in self._arms:
            if arm.name == name:
                return arm
        return None

    # --- Lifecycle ---

    def startup(self) -> None:
        logger.info("%s: startup with %d arms", self.name, len(self._arms))

    def cleanup(self) -> None:
        logger.info("%s: cleanup", self.name)

    # --- Registration ---

    def add_arm(self, arm: ArmDescriptor) -> bool:
        """Register a configured arm and wire the console to it.

        Both the PID and arm configuration files must be set. Returns False
        (and logs why) if the arm is not configured or the console cannot
        create its interfaces for the arm, e.g. because an arm with the same
        name is already registered.
        """
        try:
            if not arm.is_configured:
                raise ConfigurationError(
                    f"{arm.name} must be configured first (PID and arm config)"
                )
            self._register(arm)
        except ConfigurationError as exc:
            logger.error("%s: add_arm, %s", self.name, exc)
            return False
        except WiringError as exc:
            logger.error("%s: add_arm, unable to add new arm %s: %s", self.name, arm.name, exc)
            return False
        return True

    def add_generic_arm(self, component: Component) -> bool:
        """Register an arm component created outside the console.

        No PID or IO component is expected; only the arm's ``Robot``
        interface is connected.
        """
        arm = ArmDescriptor(name=component.name, arm_type=ArmType.GENERIC)
        try:
            self._register(arm)
        except WiringError as exc:
            logger.error("%s: add_arm, unable to add new arm %s: %s", self.name, arm.name, exc)
            return False
        return True

    def _register(self, arm: ArmDescriptor) -> None:
        self._setup_and_connect_interfaces(arm)
        self._arms.append(arm)
        arm.phase = ArmPhase.REGISTERED
        logger.info("%s: registered arm %s (%s)", self.name, arm.name, arm.arm_type.value)

    def _setup_and_connect_interfaces(self, arm: ArmDescriptor) -> None:
        """Create the IO, PID, and arm endpoints for ``arm`` and bind them.

        All three endpoints are created before anything is connected. If one
        cannot be created, those created in this call are removed again.

        Raises:
            WiringError: If any endpoint name is already taken.
        """
        names = ("IO" + arm.name, "PID" + arm.name, arm.name)
        created: list[RequiredInterface] = []
        for name in names:
            interface = self.add_interface_required(name)
            if interface is None:
                for done in created:
                    self.remove_interface_required(done.name)
                raise WiringError(
                    f"interface '{name}' already exists, are you adding two arms "
                    "with the same name?"
                )
            created.append(interface)

        io_interface, pid_interface, arm_interface = created
        for interface in created:
            self._add_message_handlers(interface)
        arm.set_robot_control_state = arm_interface.add_function(SET_ROBOT_CONTROL_STATE)

        self._connect(arm, io_interface, arm.io_component_name, arm.name)
        self._connect(arm, pid_interface, arm.pid_component_name, CONTROLLER_INTERFACE)
        self._connect(arm, arm_interface, arm.name, ROBOT_INTERFACE)

    def _add_message_handlers(self, interface: RequiredInterface) -> None:
        handlers: dict[str, Callable[[Any], None]] = {
            ERROR_EVENT: self.error_event_handler,
            WARNING_EVENT: self.warning_event_handler,
            STATUS_EVENT: self.status_event_handler,
        }
        for event in MESSAGE_EVENTS:
            interface.add_event_handler_write(event, handlers[event])

    def _connect(
        self, arm: ArmDescriptor, interface: RequiredInterface, server: str, provided: str
    ) -> None:
        if not server or self._manager.get_component(server) is None:
            logger.warning(
                "%s: no component '%s' for %s, interface left unconnected",
                self.name,
                server,
                interface.name,
            )
            return
        connection = self._manager.connect(self.name, interface.name, server, provided)
        if connection is not None:
            arm.connections.append(connection)

    # --- Main interface ---

    def set_robot_control_state(self, state: str) -> None:
        """Ask every registered arm, in registration order, to enter ``state``.

        Each arm is called synchronously and there is no timeout, so an
        unresponsive arm holds up the arms after it. A failure for one arm
        is logged and the broadcast continues; nothing is reported back to
        the issuer.
        """
        for arm in list(self._arms):
            try:
                self._deliver(arm, state)
            except CommandDeliveryError as exc:
                logger.error("%s: set_robot_control_state: %s", self.name, exc)

    def _deliver(self, arm: ArmDescriptor, state: str) -> None:
        if arm.set_robot_control_state is None:
            result = ExecutionResult.FUNCTION_NOT_BOUND
        else:
            result = arm.set_robot_control_state(state)
        if not result:
            raise CommandDeliveryError(arm.name, state, result)

    def error_event_handler(self, message: str) -> None:
        logger.debug("%s: relay error: %s", self.name, message)
        self._error_event(message)

    def warning_event_handler(self, message: str) -> None:
        logger.debug("%s: relay warning: %s", self.name, message)
        self._warning_event(message)

    def status_event_handler(self, message: str) -> None:
        logger.debug("%s: relay status: %s", self.name, message)
        self._status_event(message)

    # --- Introspection ---

    def get_all_arms(self) -> list[dict]:
        """Return all registered arms as dicts, in registration order."""
        return [arm.to_dict() for arm in self._arms]

    def get_status_summary(self) -> dict:
        """Summary of the console and its arms."""
        return {
            "name": self.name,
            "running": self.is_running,
            "total_arms": len(self._arms),
            "arms": [arm.name for arm in self._arms],
            "components": len(self._manager.component_names),
            "connections": len(self._manager.connections),
        }


class ConsoleClient(Component):
    """Caller-side endpoint on the console's ``Main`` interface.

    Issues ``SetRobotControlState`` and keeps the most recent relayed
    messages. Handlers run on the console's thread.

    Args:
        name: Component name of the client.
        max_messages: Number of relayed messages kept.
    """

    def __init__(self, name: str, max_messages: int = 200) -> None:
        super().__init__(name)
        self.messages: deque[tuple[str, str]] = deque(maxlen=max_messages)
        main = self.add_interface_required(MAIN_INTERFACE)
        self._set_robot_control_state = main.add_function(SET_ROBOT_CONTROL_STATE)
        for event in MESSAGE_EVENTS:
            main.add_event_handler_write(event, self._recorder(event))

    def _recorder(self, event: str) -> Callable[[Any], None]:
        def record(message: Any) -> None:
            self.messages.append((event, message))

        return record

    def set_robot_control_state(self, state: str) -> ExecutionResult:
        """Issue the broadcast through ``Main``; returns the console's result."""
        return self._set_robot_control_state(state)
