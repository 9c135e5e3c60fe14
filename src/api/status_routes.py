"""
Controller status snapshot routes
"""

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List, Optional
import logging

from aggregation import AggregationConfig, DeviceAggregator

logger = logging.getLogger(__name__)

# Request models
class ThermostatEntry(BaseModel):
    id: str
    label: Optional[str] = None

class SnapshotRequest(BaseModel):
    # Dashboard clients send camelCase keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    refresh_seconds: int = 15
    thermostats: List[ThermostatEntry] = []
    include_scripts: bool = True
    include_actions: bool = True
    include_schedules: bool = True
    script_ids: List[int] = []
    action_ids: List[str] = []
    schedule_ids: List[int] = []


def create_status_routes(client):
    """Create status snapshot routes"""
    router = APIRouter(prefix="/api/widget", tags=["status"])
    aggregator = DeviceAggregator(client)

    @router.post("/shelly-thermostats")
    async def controller_snapshot(request: Optional[SnapshotRequest] = None):
        """Aggregated controller, thermostat, script, action and schedule status"""
        payload = request.model_dump() if request else {}
        config = AggregationConfig.from_dict(payload)
        snapshot = await aggregator.fetch_aggregated_status(config)
        if snapshot.auth_error:
            logger.warning(f"Snapshot returned with auth error: {snapshot.auth_error}")
        return {"data": snapshot.to_dict()}

    return router
