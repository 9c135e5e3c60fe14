"""
Controller RPC proxy and dashboard layout routes
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Any, Dict, Optional
import logging
import yaml

from dashboard_layout import ensure_dashboard_panels
from rpc import ALLOWED_METHODS, MethodNotAllowedError, RpcError, classify_error
from rpc.errors import log_rpc_failure

logger = logging.getLogger(__name__)

# Request models
class RpcCallRequest(BaseModel):
    method: Optional[str] = None
    params: Optional[Dict[str, Any]] = None

class LayoutAddRequest(BaseModel):
    dashboard: Optional[str] = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_controller_routes(client, config: Dict):
    """Create controller RPC proxy routes"""
    router = APIRouter(prefix="/api/shelly", tags=["controller"])

    @router.get("/allowed-methods")
    async def allowed_methods():
        """List the RPC methods the proxy will forward"""
        return {"methods": sorted(ALLOWED_METHODS)}

    @router.post("/rpc")
    async def run_rpc(request: RpcCallRequest):
        """Run an allow-listed RPC method on the controller"""
        method = (request.method or '').strip()
        if not method:
            return _error(400, "method must be a non-empty string")

        try:
            result = await client.call(method, request.params)
            return {"result": result}
        except MethodNotAllowedError as e:
            return _error(403, e.message)
        except RpcError as e:
            log_rpc_failure(classify_error(e))
            return _error(502, e.message)

    @router.post("/layout/add")
    async def add_layout_panels(request: LayoutAddRequest):
        """Ensure a dashboard contains the controller panels"""
        dashboard = (request.dashboard or '').strip()
        if not dashboard:
            return _error(400, "dashboard must be a non-empty string")

        try:
            added = ensure_dashboard_panels(dashboard, config=config)
            return {"added": added}
        except FileNotFoundError as e:
            return _error(404, str(e))
        except ValueError as e:
            return _error(400, str(e))
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to ensure panels for dashboard {dashboard}: {e}")
            return _error(500, str(e))

    return router
