"""Control routes: state reset and the workflow simulator."""

import time
from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...app import Application
from ...logging_config import get_logger

logger = get_logger(__name__)


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


class SimStatusResponse(StatusResponse):
    """Simulator state after a control call."""

    running: bool


# Simulator, injected by main before the app starts
_sim_instance: Any = None


def set_sim_instance(sim: Any) -> None:
    global _sim_instance
    _sim_instance = sim


def get_sim_instance() -> Any:
    return _sim_instance


def _require_sim() -> Any:
    if _sim_instance is None:
        raise HTTPException(status_code=404, detail="SIM not configured")
    return _sim_instance


def create_control_router(app: Application) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api", tags=["control"])

    @router.post("/debug/clear-all")
    async def clear_all() -> dict:
        """Drop all buffered replies and tracked messages, cancelling countdowns."""
        counts = app.store.clear()
        logger.warning("All reconciliation state cleared", extra={"context": counts})
        return {
            "success": True,
            "message": "All state cleared",
            "clearedCounts": counts,
            "timestamp": int(time.time() * 1000),
        }

    @router.post("/control/reset", response_model=StatusResponse)
    async def reset_system() -> dict:
        """Reset reconciliation state and trace data between runs."""
        try:
            await app.reset()
        except Exception as e:
            logger.error("Reset failed: %s", e, exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))
        return {"status": "ok"}

    @router.post("/control/sim/{action}", response_model=SimStatusResponse)
    async def control_sim(action: str) -> dict:
        """Start or stop the workflow simulator."""
        if action not in ("start", "stop"):
            raise HTTPException(status_code=404, detail=f"Unknown SIM action: {action}")
        sim = _require_sim()
        try:
            await (sim.start() if action == "start" else sim.stop())
        except Exception as e:
            logger.error("SIM %s failed: %s", action, e, exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))
        return {"status": "ok", "running": sim.running}

    return router
