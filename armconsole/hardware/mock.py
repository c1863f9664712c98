"""In-process stand-ins for the IO, PID, and arm components.

They expose the same interface names as the real drivers so the console
can be created, wired, and driven without hardware. Control-state requests
are recorded rather than acted on.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from armconsole.hardware.types import (
    ADAPTER_INTERFACE,
    AUXILIARY_INTERFACES,
    CONTROLLER_INTERFACE,
    ERROR_EVENT,
    MANIP_CLUTCH_INTERFACE,
    MESSAGE_EVENTS,
    PID_INTERFACE,
    ROBOT_INTERFACE,
    ROBOT_IO_INTERFACE,
    SET_ROBOT_CONTROL_STATE,
    STATUS_EVENT,
    TOOL_INTERFACE,
    TORQUE_INTERFACE,
    ArmType,
)
from armconsole.runtime.component import EXEC_EVENT, EXEC_OUT, Task
from armconsole.runtime.interfaces import ProvidedInterface

# Events on an IO robot's auxiliary (button) interfaces.
BUTTON_EVENT = "Button"


def _add_message_events(interface: ProvidedInterface) -> dict[str, Callable[[Any], None]]:
    return {name: interface.add_event_write(name) for name in MESSAGE_EVENTS}


class MockRobotIO(Task):
    """IO component serving one or more arms.

    Each robot added gets a provided interface named after the arm plus the
    ``-Adapter``, ``-Tool``, and ``-ManipClutch`` button interfaces. Every
    cycle fires ``ExecOut`` so PIDs with a period of 0 run in lockstep.

    Args:
        name: Component name.
        period: IO sampling period in seconds.
    """

    def __init__(self, name: str, period: float = 0.01) -> None:
        super().__init__(name, period=period)
        self._messages: dict[str, dict[str, Callable[[Any], None]]] = {}
        exec_out = self.add_interface_provided(EXEC_OUT)
        self._exec_out = exec_out.add_event_write(EXEC_EVENT)

    def add_robot(self, robot_name: str) -> None:
        """Create the provided interfaces for an arm attached to this IO."""
        robot = self.add_interface_provided(robot_name)
        if robot is None:
            return
        self._messages[robot_name] = _add_message_events(robot)
        for suffix in (ADAPTER_INTERFACE, TOOL_INTERFACE, MANIP_CLUTCH_INTERFACE):
            button = self.add_interface_provided(f"{robot_name}-{suffix}")
            button.add_event_write(BUTTON_EVENT)

    def emit_message(self, robot_name: str, event: str, message: str) -> None:
        """Emit an Error/Warning/Status message on a robot's interface."""
        self._messages[robot_name][event](message)

    def run(self) -> None:
        super().run()
        self._exec_out(None)


class MockPID(Task):
    """Joint PID controller stand-in.

    Args:
        name: Component name (``<arm>-PID``).
        period: Control period in seconds.
    """

    def __init__(self, name: str, period: float) -> None:
        super().__init__(name, period=period)
        self.enabled = False
        self.cycles = 0
        controller = self.add_interface_provided(CONTROLLER_INTERFACE)
        controller.add_command_write("Enable", self._enable)
        self._messages = _add_message_events(controller)
        self.add_interface_required(TORQUE_INTERFACE)
        self.add_exec_in_interface()

    def _enable(self, enable: bool) -> None:
        self.enabled = bool(enable)
        self._messages[STATUS_EVENT](f"{self.name}: {'enabled' if self.enabled else 'disabled'}")

    def emit_message(self, event: str, message: str) -> None:
        self._messages[event](message)

    def run(self) -> None:
        super().run()
        self.cycles += 1


class MockArm(Task):
    """Arm stand-in providing the ``Robot`` interface.

    Records every control state it is asked to enter. An empty state is
    rejected: an Error event is emitted and the command fails.

    Args:
        name: Component name (the arm name).
        period: Arm period in seconds.
    """

    ARM_TYPE = ArmType.GENERIC

    def __init__(self, name: str, period: float) -> None:
        super().__init__(name, period=period)
        self.states: list[str] = []
        robot = self.add_interface_provided(ROBOT_INTERFACE)
        robot.add_command_write(SET_ROBOT_CONTROL_STATE, self.set_robot_control_state)
        self._messages = _add_message_events(robot)
        if self.ARM_TYPE.is_research_kit:
            self.add_interface_required(ROBOT_IO_INTERFACE)
            self.add_interface_required(PID_INTERFACE)
        for interface_name in AUXILIARY_INTERFACES[self.ARM_TYPE]:
            self.add_interface_required(interface_name)

    def set_robot_control_state(self, state: str) -> None:
        if not state:
            self._messages[ERROR_EVENT](f"{self.name}: empty control state")
            raise ValueError("control state must be non-empty")
        self.states.append(state)
        self._messages[STATUS_EVENT](f"{self.name}: control state {state}")

    def emit_message(self, event: str, message: str) -> None:
        self._messages[event](message)


class MockMTM(MockArm):
    ARM_TYPE = ArmType.MTM


class MockPSM(MockArm):
    ARM_TYPE = ArmType.PSM


class MockECM(MockArm):
    ARM_TYPE = ArmType.ECM
