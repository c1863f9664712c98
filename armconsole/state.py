"""ConsoleState: lifecycle manager for the rig assembled from config.

Builds the registry, the IO component, every configured arm, and the
console in dependency order, then starts them. The API layer reaches the
running rig through ``get_state()``; the core modules never do.
"""

from __future__ import annotations

import enum
import logging
import threading
from pathlib import Path

from armconsole.config import console_section, load_config
from armconsole.console import Console, ConsoleClient
from armconsole.errors import ConfigurationError, ConsoleError
from armconsole.hardware.arm import ArmDescriptor
from armconsole.hardware.mock import MockRobotIO
from armconsole.hardware.types import MAIN_INTERFACE
from armconsole.runtime.manager import ComponentManager

logger = logging.getLogger(__name__)

CLIENT_NAME = "api"


class SystemPhase(enum.StrEnum):
    """Lifecycle phase of the rig."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    ERROR = "error"
    SHUTTING_DOWN = "shutting_down"


class ConsoleState:
    """Central state holder for the running rig.

    Lifecycle: uninitialized → initializing → ready (or error).
    Call ``initialize()`` once at startup, ``shutdown()`` on exit.

    Args:
        config_path: Explicit config file; None uses the fallback chain.
    """

    def __init__(self, config_path: Path | None = None) -> None:
        self._lock = threading.Lock()
        self._config_path = config_path
        self._phase = SystemPhase.UNINITIALIZED
        self._error: str | None = None
        self._config_data: dict = {}

        self._manager: ComponentManager | None = None
        self._console: Console | None = None
        self._client: ConsoleClient | None = None
        self._failed_arms: list[str] = []

    # --- Read-only properties ---

    @property
    def phase(self) -> SystemPhase:
        """Current lifecycle phase."""
        return self._phase

    @property
    def error(self) -> str | None:
        """Error message if phase is ERROR, else None."""
        return self._error

    @property
    def config_data(self) -> dict:
        """Full parsed config dict (read-only view)."""
        return self._config_data

    @property
    def manager(self) -> ComponentManager:
        """Return the component registry. Raises if not initialized."""
        if self._manager is None:
            raise RuntimeError("ConsoleState not initialized, call initialize() first")
        return self._manager

    @property
    def console(self) -> Console:
        """Return the console. Raises if not initialized."""
        if self._console is None:
            raise RuntimeError("ConsoleState not initialized, call initialize() first")
        return self._console

    @property
    def client(self) -> ConsoleClient:
        """Return the API's client on the console's Main interface."""
        if self._client is None:
            raise RuntimeError("ConsoleState not initialized, call initialize() first")
        return self._client

    @property
    def failed_arms(self) -> list[str]:
        """Arms from config that could not be configured or registered."""
        return list(self._failed_arms)

    # --- Lifecycle ---

    def initialize(self) -> None:
        """Build and start the rig. Idempotent."""
        with self._lock:
            if self._phase == SystemPhase.READY:
                return
            self._phase = SystemPhase.INITIALIZING

        try:
            self._config_data = load_config(self._config_path)
            self._build()
            self._manager.start_all()

            with self._lock:
                self._phase = SystemPhase.READY
                self._error = None

            logger.info(
                "ConsoleState ready: %d arms registered, %d failed",
                len(self._console.arms),
                len(self._failed_arms),
            )
        except Exception as exc:
            with self._lock:
                self._phase = SystemPhase.ERROR
                self._error = str(exc)
            logger.error("ConsoleState initialization failed: %s", exc)

    def _build(self) -> None:
        """Create registry, IO, arms, console, and the API client."""
        section = console_section(self._config_data)
        manager = ComponentManager()
        io = MockRobotIO(section["io"], period=section["io_period"])
        manager.add_component(io)
        console = Console(section["name"], manager)
        self._manager = manager
        self._console = console
        self._failed_arms = []

        for arm_name, arm_cfg in (self._config_data.get("arms") or {}).items():
            try:
                if not isinstance(arm_cfg, dict):
                    raise ConfigurationError(f"arm entry must be a mapping, got {arm_cfg!r}")
                io.add_robot(arm_name)
                arm = ArmDescriptor(name=arm_name, io_component_name=io.name)
                arm.configure_pid(
                    manager, arm_cfg.get("pid", ""), float(arm_cfg.get("pid_period", 0.0))
                )
                arm.configure_arm(
                    manager,
                    arm_cfg.get("type", "generic"),
                    arm_cfg.get("arm", ""),
                    float(arm_cfg.get("arm_period", 0.0)),
                )
            except (ConsoleError, ValueError) as exc:
                logger.error("Failed to configure arm %s: %s", arm_name, exc)
                self._failed_arms.append(arm_name)
                continue
            if not console.add_arm(arm):
                self._failed_arms.append(arm_name)

        client = ConsoleClient(CLIENT_NAME)
        manager.add_component(client)
        manager.connect(client.name, MAIN_INTERFACE, console.name, MAIN_INTERFACE)
        self._client = client

    def shutdown(self) -> None:
        """Stop every component."""
        with self._lock:
            if self._phase == SystemPhase.SHUTTING_DOWN:
                return
            self._phase = SystemPhase.SHUTTING_DOWN

        if self._manager is not None:
            self._manager.kill_all()

        self._manager = None
        self._console = None
        self._client = None

        with self._lock:
            self._phase = SystemPhase.UNINITIALIZED

        logger.info("ConsoleState shut down")

    def reload(self) -> None:
        """Shutdown and re-initialize the rig."""
        self.shutdown()
        self.initialize()

    # --- Introspection ---

    def get_status_dict(self) -> dict:
        """Return system status for the ``/system/status`` endpoint."""
        status: dict = {
            "phase": self._phase.value,
            "error": self._error,
            "failedArms": list(self._failed_arms),
        }
        if self._console is not None:
            status.update(self._console.get_status_summary())
        return status


# --- Module-level singleton ---

_state: ConsoleState | None = None
_state_lock = threading.Lock()


def get_state() -> ConsoleState:
    """Return the global ConsoleState, initializing on first call."""
    global _state  # noqa: PLW0603
    if _state is None:
        with _state_lock:
            if _state is None:
                _state = ConsoleState()
                _state.initialize()
    return _state
