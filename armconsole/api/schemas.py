"""API request/response schemas for the console routes.

All use camelCase aliases for JSON serialization.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ConnectionInfo(BaseModel):
    """One registry connection made for an arm."""

    model_config = ConfigDict(populate_by_name=True)

    client: str
    required: str
    server: str
    provided: str


class ArmInfo(BaseModel):
    """A registered arm as reported by the console."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    arm_type: str = Field(alias="armType")
    io_component_name: str = Field("", alias="ioComponentName")
    pid_component_name: str = Field("", alias="pidComponentName")
    pid_config_file: str = Field("", alias="pidConfigFile")
    arm_config_file: str = Field("", alias="armConfigFile")
    phase: str
    connections: list[ConnectionInfo] = Field(default_factory=list)


class SetControlStateRequest(BaseModel):
    """Request body for broadcasting a control state."""

    state: str = Field(min_length=1)


class SetControlStateResponse(BaseModel):
    """Outcome of handing the broadcast to the console."""

    model_config = ConfigDict(populate_by_name=True)

    state: str
    result: str


class RestartResponse(BaseModel):
    """State of the rig after a rebuild."""

    model_config = ConfigDict(populate_by_name=True)

    phase: str
    arms: list[str] = Field(default_factory=list)
    failed_arms: list[str] = Field(default_factory=list, alias="failedArms")
    error: str | None = None


class ConsoleEvent(BaseModel):
    """A message relayed on the console's Main interface."""

    event: str
    message: str
