"""Hardware type definitions.

Arm classification and the interface names shared between the console,
the arms, their PID controllers, and the IO component. These are pure
data -- no component logic.
"""

from __future__ import annotations

from enum import StrEnum


class ArmType(StrEnum):
    """Classification of a registered arm."""

    MTM = "mtm"  # master tool manipulator
    PSM = "psm"  # patient side manipulator
    ECM = "ecm"  # endoscope camera manipulator
    GENERIC = "generic"

    @property
    def is_research_kit(self) -> bool:
        """Whether the console creates and wires this arm's components."""
        return self is not ArmType.GENERIC


class ArmPhase(StrEnum):
    """Configuration progress of an arm descriptor (strictly forward)."""

    CREATED = "created"
    PID_CONFIGURED = "pid_configured"
    ARM_CONFIGURED = "arm_configured"
    REGISTERED = "registered"


# Control-loop component name is always <arm name> + PID_SUFFIX.
PID_SUFFIX = "-PID"

# Used when a PID or arm period of 0 is requested.
DEFAULT_PERIOD = 1.0

# --- Interface and command names ---

MAIN_INTERFACE = "Main"
ROBOT_INTERFACE = "Robot"
CONTROLLER_INTERFACE = "Controller"
ROBOT_IO_INTERFACE = "RobotIO"
PID_INTERFACE = "PID"
TORQUE_INTERFACE = "RobotJointTorqueInterface"
ADAPTER_INTERFACE = "Adapter"
TOOL_INTERFACE = "Tool"
MANIP_CLUTCH_INTERFACE = "ManipClutch"

SET_ROBOT_CONTROL_STATE = "SetRobotControlState"

ERROR_EVENT = "Error"
WARNING_EVENT = "Warning"
STATUS_EVENT = "Status"
MESSAGE_EVENTS = (ERROR_EVENT, WARNING_EVENT, STATUS_EVENT)

# Auxiliary IO interfaces each arm type connects beyond RobotIO and PID.
AUXILIARY_INTERFACES: dict[ArmType, tuple[str, ...]] = {
    ArmType.MTM: (),
    ArmType.PSM: (ADAPTER_INTERFACE, TOOL_INTERFACE, MANIP_CLUTCH_INTERFACE),
    ArmType.ECM: (MANIP_CLUTCH_INTERFACE,),
    ArmType.GENERIC: (),
}
