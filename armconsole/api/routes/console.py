"""Console routes: registered arms, control-state broadcast, relayed events.

The broadcast endpoint uses ``def`` (not ``async def``) so FastAPI runs it
in the thread pool: it blocks until every arm has been asked.
"""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Query

from armconsole.api.schemas import (
    ArmInfo,
    ConsoleEvent,
    SetControlStateRequest,
    SetControlStateResponse,
)
from armconsole.hardware.types import MESSAGE_EVENTS

if TYPE_CHECKING:
    from armconsole.console import Console, ConsoleClient

logger = logging.getLogger(__name__)

router = APIRouter()


def _ready_console() -> tuple[Console, ConsoleClient]:
    """Return the running console and the API client, or answer 503.

    The rig is unavailable while it is being built, stopped, or rebuilt.
    """
    from armconsole.state import SystemPhase, get_state

    state = get_state()
    if state.phase == SystemPhase.READY:
        with contextlib.suppress(RuntimeError):
            return state.console, state.client
    raise HTTPException(503, f"Console not ready (phase: {state.phase.value})")


@router.get("/arms", response_model=list[ArmInfo])
async def list_arms() -> list[ArmInfo]:
    """Return registered arms in registration order."""
    console, _ = _ready_console()
    return [ArmInfo.model_validate(a) for a in console.get_all_arms()]


@router.get("/arms/{arm_name}", response_model=ArmInfo)
async def get_arm(arm_name: str) -> ArmInfo:
    """Return a single registered arm."""
    console, _ = _ready_console()
    arm = console.get_arm(arm_name)
    if arm is None:
        raise HTTPException(404, f"Arm '{arm_name}' not registered")
    return ArmInfo.model_validate(arm.to_dict())


@router.post("/state", response_model=SetControlStateResponse)
def set_robot_control_state(request: SetControlStateRequest) -> SetControlStateResponse:
    """Broadcast a control state to every arm through the Main interface."""
    _, client = _ready_console()
    result = client.set_robot_control_state(request.state)
    logger.info("Broadcast control state %s: %s", request.state, result)
    return SetControlStateResponse(state=request.state, result=result.value)


@router.get("/events", response_model=list[ConsoleEvent])
async def recent_events(
    event: str | None = Query(None, description="Only Error, Warning, or Status"),
    limit: int = Query(50, ge=1, le=500),
) -> list[ConsoleEvent]:
    """Return the most recent relayed messages, oldest first."""
    _, client = _ready_console()
    if event is not None and event not in MESSAGE_EVENTS:
        raise HTTPException(400, f"Unknown event: {event}")

    messages = [
        ConsoleEvent(event=name, message=message)
        for name, message in list(client.messages)
        if event is None or name == event
    ]
    return messages[-limit:]
