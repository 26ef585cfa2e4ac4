"""
FleetWatch API — FastAPI endpoints for a dashboard renderer.

The renderer polls the latest snapshot and may send one command, a manual
override. Exposes:
- Snapshot and entity inspection
- Alerts (standing, transient, headline)
- Manual override
- Scheduler control
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from fleetwatch.entities.state_machine import EntityNotFoundError
from fleetwatch.models.config import SimulationConfig
from fleetwatch.scheduler.loop import TickInProgressError, TickScheduler

logger = logging.getLogger(__name__)


# --- Request Models ---

class OverrideRequest(BaseModel):
    target_state: str


class TickRequest(BaseModel):
    count: int = Field(ge=1, le=10_000, default=1)


# --- Application Factory ---

def create_app(
    scheduler: Optional[TickScheduler] = None,
    config: Optional[SimulationConfig] = None,
    autostart: bool = False,
) -> FastAPI:
    """Create the FastAPI application around a scheduler."""

    if scheduler is None:
        scheduler = TickScheduler(config or SimulationConfig())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not autostart:
            yield
            return
        stop_event = asyncio.Event()
        task = asyncio.create_task(scheduler.run_async(stop_event))
        try:
            yield
        finally:
            stop_event.set()
            await task

    app = FastAPI(
        title="FleetWatch API",
        description="Fleet simulation and alerting core",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.scheduler = scheduler

    # === SNAPSHOT ===

    @app.get("/snapshot")
    def get_snapshot():
        """The last committed snapshot."""
        return scheduler.snapshot.model_dump(mode="json")

    @app.get("/summary")
    def get_summary():
        snap = scheduler.snapshot
        return {
            "tick": snap.tick,
            "time": snap.time,
            "summary": snap.summary.model_dump(mode="json"),
        }

    @app.get("/entities/{entity_id}")
    def get_entity(entity_id: str):
        entity = scheduler.snapshot.entities.get(entity_id)
        if not entity:
            raise HTTPException(404, "Entity not found")
        return entity.model_dump(mode="json")

    @app.get("/stations/{station_id}")
    def get_station(station_id: str):
        classification = scheduler.snapshot.classifications.get(station_id)
        if not classification:
            raise HTTPException(404, "Station not found")
        return classification.model_dump(mode="json")

    # === ALERTS ===

    @app.get("/alerts")
    def get_alerts():
        snap = scheduler.snapshot
        return {
            "standing": _dump(snap.standing_alert),
            "transient": _dump(snap.transient_alert),
            "headline": _dump(snap.headline),
        }

    # === MANUAL OVERRIDE ===

    @app.post("/entities/{entity_id}/override")
    async def override_entity(entity_id: str, req: OverrideRequest):
        """Move an entity manually, e.g. start cleaning now. Runs on the event loop."""
        try:
            result = scheduler.override(entity_id, req.target_state)
        except EntityNotFoundError:
            raise HTTPException(404, "Entity not found")
        except TickInProgressError as e:
            raise HTTPException(409, str(e))

        if not result.accepted:
            raise HTTPException(409, result.reason)
        return result.model_dump(mode="json")

    # === SCHEDULER ===

    @app.get("/scheduler/status")
    def scheduler_status():
        snap = scheduler.snapshot
        return {
            "status": scheduler.status,
            "tick": snap.tick,
            "time": snap.time,
            "tick_period": scheduler.config.tick_period,
            "name": scheduler.config.name,
        }

    @app.post("/scheduler/tick")
    async def trigger_tick(req: Optional[TickRequest] = None):
        """Advance the simulation manually."""
        count = req.count if req else 1
        try:
            snap = scheduler.run(count)
        except TickInProgressError as e:
            raise HTTPException(409, str(e))
        logger.debug("Manual tick x%d -> tick %d", count, snap.tick)
        return {
            "tick": snap.tick,
            "time": snap.time,
            "transitions": [t.model_dump(mode="json") for t in snap.transitions],
            "headline": _dump(snap.headline),
        }

    return app


def _dump(model) -> Optional[dict]:
    if model is None:
        return None
    return model.model_dump(mode="json")
