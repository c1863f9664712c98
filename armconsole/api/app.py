"""Console API: thin FastAPI layer over the arm console.

All orchestration lives in the armconsole package. This module only wires
routes, middleware, and the application lifecycle.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from armconsole.api.routes import console, system

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Lifespan
# ------------------------------------------------------------------


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the rig on start and stop it on exit."""
    from armconsole.state import get_state

    get_state()
    logger.info("Console API started")
    yield
    import armconsole.state as state_mod

    if state_mod._state is not None:
        state_mod._state.shutdown()
    logger.info("Console API stopped")


app = FastAPI(title="Arm Console API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(console.router, prefix="/console", tags=["console"])
app.include_router(system.router, prefix="/system", tags=["system"])


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}
