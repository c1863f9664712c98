"""Console exception hierarchy.

All console-specific exceptions inherit from ConsoleError. Catch specific
subclasses in business logic; only catch ConsoleError at top-level safety
handlers.
"""


class ConsoleError(Exception):
    """Base exception for all console errors."""


class ComponentError(ConsoleError):
    """Component registry failure -- duplicate or unknown component."""


class ConfigurationError(ConsoleError):
    """Arm registered before its PID and arm config files were set."""


class WiringError(ConsoleError):
    """Required interface could not be created or bound for an arm."""


class CommandDeliveryError(ConsoleError):
    """A broadcast command failed for a single arm."""

    def __init__(self, arm_name: str, state: str, result: object) -> None:
        super().__init__(f'failed to set state "{state}" for arm "{arm_name}" ({result})')
        self.arm_name = arm_name
        self.state = state
        self.result = result
