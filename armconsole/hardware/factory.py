"""Component factory: maps arm types to the components that implement them.

Construction is a function table keyed by ``ArmType``. The defaults build
the in-process stand-ins from ``armconsole.hardware.mock``; a rig with real
drivers passes its own builders. Generic arms have no entry: their
component is created outside the console.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from armconsole.errors import ConfigurationError
from armconsole.hardware.mock import MockECM, MockMTM, MockPID, MockPSM
from armconsole.hardware.types import DEFAULT_PERIOD, ArmType
from armconsole.runtime.component import Component

ComponentBuilder = Callable[[str, float], Component]

ARM_BUILDERS: dict[ArmType, ComponentBuilder] = {
    ArmType.MTM: MockMTM,
    ArmType.PSM: MockPSM,
    ArmType.ECM: MockECM,
}


@dataclass
class ComponentFactory:
    """Builds PID and arm components.

    Attributes:
        pid_builder: Called with ``(name, period)`` for control loops.
        arm_builders: Per-type builders called with ``(name, period)``.
    """

    pid_builder: ComponentBuilder = MockPID
    arm_builders: dict[ArmType, ComponentBuilder] = field(
        default_factory=lambda: dict(ARM_BUILDERS)
    )

    def create_pid(self, name: str, period: float) -> Component:
        """Create a control-loop component; a period of 0 means the default."""
        return self.pid_builder(name, period or DEFAULT_PERIOD)

    def create_arm(self, arm_type: ArmType, name: str, period: float) -> Component:
        """Create the functional component for a research-kit arm.

        A period of 0 means ``DEFAULT_PERIOD``, the same rule as
        ``create_pid``: every arm component is a periodic task and needs a
        positive cycle time. Builders that accept 0 can be registered in
        ``arm_builders`` in place of the defaults.

        Raises:
            ConfigurationError: If no builder is registered for ``arm_type``.
        """
        builder = self.arm_builders.get(arm_type)
        if builder is None:
            raise ConfigurationError(f"No component builder for arm type '{arm_type}'")
        return builder(name, period or DEFAULT_PERIOD)


DEFAULT_FACTORY = ComponentFactory()
