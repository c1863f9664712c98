"""Arm descriptor: identity and configuration record for one manipulator.

A descriptor is configured in two steps (PID, then arm) before the console
accepts it. Each step creates components in the ``ComponentManager`` it is
given and connects them to the arm's IO component. The descriptor keeps
only names and connection records; the manager owns the components.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from armconsole.errors import ConfigurationError
from armconsole.hardware.factory import DEFAULT_FACTORY, ComponentFactory
from armconsole.hardware.types import (
    AUXILIARY_INTERFACES,
    CONTROLLER_INTERFACE,
    PID_INTERFACE,
    PID_SUFFIX,
    ROBOT_IO_INTERFACE,
    TORQUE_INTERFACE,
    ArmPhase,
    ArmType,
)
from armconsole.runtime.component import EXEC_IN, EXEC_OUT, Component
from armconsole.runtime.interfaces import Function
from armconsole.runtime.manager import ComponentManager, Connection

logger = logging.getLogger(__name__)


@dataclass
class ArmDescriptor:
    """One arm of the rig.

    Attributes:
        name: Unique arm name across the rig (also the arm component's name).
        io_component_name: IO component the arm's hardware is attached to.
            Empty for arms supplied from outside the console.
        arm_type: Classification; set by ``configure_arm``.
        pid_config_file: PID configuration file, set by ``configure_pid``.
        arm_config_file: Arm configuration file, set by ``configure_arm``.
        phase: Configuration progress; only moves forward.
        connections: Registry connections made on behalf of this arm.
        set_robot_control_state: Bound by the console when the arm is wired.
    """

    name: str
    io_component_name: str = ""
    arm_type: ArmType = ArmType.GENERIC
    pid_config_file: str = ""
    arm_config_file: str = ""
    phase: ArmPhase = ArmPhase.CREATED
    connections: list[Connection] = field(default_factory=list)
    set_robot_control_state: Function | None = field(default=None, repr=False)

    @property
    def pid_component_name(self) -> str:
        return self.name + PID_SUFFIX

    @property
    def is_configured(self) -> bool:
        """Both configuration files are set."""
        return bool(self.pid_config_file) and bool(self.arm_config_file)

    def configure_pid(
        self,
        manager: ComponentManager,
        config_file: str,
        period: float = 0.0,
        factory: ComponentFactory = DEFAULT_FACTORY,
    ) -> None:
        """Create the arm's PID component and connect it to the IO.

        With ``period == 0`` the PID gets the default period and is also
        clocked by the IO component's ``ExecOut`` so it runs synchronously
        with IO sampling.

        Raises:
            ConfigurationError: If the PID was already configured.
            ComponentError: If ``<name>-PID`` already exists in the manager.
        """
        self._require_phase(ArmPhase.CREATED, "configure_pid")

        pid = factory.create_pid(self.pid_component_name, period)
        pid.configure(config_file)
        manager.add_component(pid)

        pid_name = self.pid_component_name
        io_name = self.io_component_name
        self._connect(manager, pid_name, TORQUE_INTERFACE, io_name, self.name)
        if period == 0.0:
            self._connect(manager, pid_name, EXEC_IN, io_name, EXEC_OUT)

        self.pid_config_file = config_file
        self.phase = ArmPhase.PID_CONFIGURED
        logger.info("Configured PID %s from %s", self.pid_component_name, config_file)

    def configure_arm(
        self,
        manager: ComponentManager,
        arm_type: ArmType | str,
        config_file: str,
        period: float = 0.0,
        existing_arm: Component | None = None,
        factory: ComponentFactory = DEFAULT_FACTORY,
    ) -> None:
        """Create (unless supplied) and connect the arm's functional component.

        Research-kit arms are created through ``factory`` when no
        ``existing_arm`` is given, then connected to the IO (``RobotIO`` and
        the type's auxiliary interfaces) and to the PID (``PID``). Generic
        arms only record the configuration file.

        Raises:
            ConfigurationError: If the PID is not configured yet, or the arm
                was already configured.
            ComponentError: If the arm name already exists in the manager.
        """
        self._require_phase(ArmPhase.PID_CONFIGURED, "configure_arm")
        arm_type = ArmType(arm_type)

        if arm_type.is_research_kit:
            if existing_arm is None:
                component = factory.create_arm(arm_type, self.name, period)
                component.configure(config_file)
                manager.add_component(component)

            for interface_name in AUXILIARY_INTERFACES[arm_type]:
                self._connect(
                    manager,
                    self.name,
                    interface_name,
                    self.io_component_name,
                    f"{self.name}-{interface_name}",
                )
            self._connect(manager, self.name, ROBOT_IO_INTERFACE, self.io_component_name, self.name)
            self._connect(
                manager, self.name, PID_INTERFACE, self.pid_component_name, CONTROLLER_INTERFACE
            )

        self.arm_type = arm_type
        self.arm_config_file = config_file
        self.phase = ArmPhase.ARM_CONFIGURED
        logger.info("Configured arm %s (%s) from %s", self.name, arm_type.value, config_file)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "io_component_name": self.io_component_name,
            "pid_component_name": self.pid_component_name,
            "arm_type": self.arm_type.value,
            "pid_config_file": self.pid_config_file,
            "arm_config_file": self.arm_config_file,
            "phase": self.phase.value,
            "connections": [c.to_dict() for c in self.connections],
        }

    def _require_phase(self, expected: ArmPhase, operation: str) -> None:
        if self.phase != expected:
            raise ConfigurationError(
                f"{self.name}: {operation} requires phase '{expected}', arm is '{self.phase}'"
            )

    def _connect(
        self,
        manager: ComponentManager,
        client: str,
        required: str,
        server: str,
        provided: str,
    ) -> None:
        connection = manager.connect(client, required, server, provided)
        if connection is not None:
            self.connections.append(connection)
