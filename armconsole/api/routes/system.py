"""System routes: rig status, effective configuration, and rebuild.

``POST /restart`` rebuilds the whole rig from configuration and answers
with the arms that came back. Console routes answer 503 while it runs.
"""

from __future__ import annotations

import logging
import threading

from fastapi import APIRouter, HTTPException

from armconsole.api.schemas import RestartResponse

logger = logging.getLogger(__name__)

router = APIRouter()

# Held for the duration of a rebuild; a second request is refused.
_restart_lock = threading.Lock()


@router.get("/status")
async def system_status() -> dict:
    """Return lifecycle phase, registered arms, and registry size."""
    from armconsole.state import get_state

    return get_state().get_status_dict()


@router.get("/config")
async def get_config() -> dict:
    """Return the rig configuration the console was built from.

    The ``console`` section is reported with its defaults filled in.
    """
    from armconsole.config import console_section
    from armconsole.state import get_state

    data = get_state().config_data
    return {"console": console_section(data), "arms": data.get("arms") or {}}


@router.post("/restart", response_model=RestartResponse)
def restart_system() -> RestartResponse:
    """Stop every component, rebuild the rig from config, and start it again.

    Runs in the thread pool and returns once the rebuilt rig is started.
    """
    from armconsole.state import SystemPhase, get_state

    if not _restart_lock.acquire(blocking=False):
        raise HTTPException(409, "Restart already in progress")
    try:
        state = get_state()
        state.reload()
        arms = [arm.name for arm in state.console.arms] if state.phase == SystemPhase.READY else []
        logger.info("Rig rebuilt: phase %s, %d arms", state.phase, len(arms))
        return RestartResponse(
            phase=state.phase.value,
            arms=arms,
            failed_arms=state.failed_arms,
            error=state.error,
        )
    finally:
        _restart_lock.release()
