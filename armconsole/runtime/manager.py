"""Component registry: creates, names, and connects components.

One ``ComponentManager`` per rig. It is passed explicitly to every
operation that needs it; nothing in the package looks it up globally.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from armconsole.errors import ComponentError
from armconsole.runtime.component import Component

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Connection:
    """A required interface bound to a provided interface.

    Attributes:
        client: Component owning the required interface.
        required: Required interface name on ``client``.
        server: Component owning the provided interface.
        provided: Provided interface name on ``server``.
    """

    client: str
    required: str
    server: str
    provided: str

    def __str__(self) -> str:
        return f"{self.client}:{self.required} -> {self.server}:{self.provided}"

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "client": self.client,
            "required": self.required,
            "server": self.server,
            "provided": self.provided,
        }


class ComponentManager:
    """Process-wide registry of named components and their connections."""

    def __init__(self) -> None:
        self._components: dict[str, Component] = {}
        self._connections: list[Connection] = []
        self._lock = threading.Lock()

    @property
    def component_names(self) -> list[str]:
        return list(self._components)

    @property
    def connections(self) -> list[Connection]:
        return list(self._connections)

    def add_component(self, component: Component) -> None:
        """Register a component under its name.

        Raises:
            ComponentError: If a component with the same name exists.
        """
        with self._lock:
            if component.name in self._components:
                raise ComponentError(f"Component '{component.name}' already registered")
            self._components[component.name] = component
        logger.info("Added component %s (%s)", component.name, type(component).__name__)

    def get_component(self, name: str) -> Component | None:
        return self._components.get(name)

    def connect(
        self,
        client_name: str,
        required_name: str,
        server_name: str,
        provided_name: str,
    ) -> Connection | None:
        """Bind ``client:required`` to ``server:provided``.

        Returns:
            The connection record, or None if either end is missing, the
            required interface is already connected, or binding fails.
        """
        client = self._components.get(client_name)
        server = self._components.get(server_name)
        if client is None or server is None:
            logger.error(
                "Connect %s:%s -> %s:%s failed, unknown component '%s'",
                client_name,
                required_name,
                server_name,
                provided_name,
                client_name if client is None else server_name,
            )
            return None

        required = client.get_interface_required(required_name)
        provided = server.get_interface_provided(provided_name)
        if required is None or provided is None:
            logger.error(
                "Connect %s:%s -> %s:%s failed, unknown interface",
                client_name,
                required_name,
                server_name,
                provided_name,
            )
            return None

        with self._lock:
            if required.is_connected:
                logger.error("%s:%s is already connected", client_name, required_name)
                return None
            if not required.bind(provided):
                return None
            connection = Connection(client_name, required_name, server_name, provided_name)
            self._connections.append(connection)

        logger.debug("Connected %s", connection)
        return connection

    def start_all(self) -> None:
        """Start every registered component in registration order."""
        for component in list(self._components.values()):
            component.start()

    def kill_all(self) -> None:
        """Stop every component in reverse registration order."""
        for component in reversed(list(self._components.values())):
            try:
                component.kill()
            except Exception as exc:
                logger.error("Error stopping component %s: %s", component.name, exc)
