"""
Main FastAPI application setup

Local HTTP API for the controller gateway
Provides the guarded RPC proxy, allow-list introspection, dashboard panel
management and aggregated status snapshots
"""

from fastapi import FastAPI
from typing import Dict
import logging

from rpc import ConnectionResolver, ControllerClient
from secrets_store import SecretStore

# Import modular route factories
from .controller_routes import create_controller_routes
from .status_routes import create_status_routes

logger = logging.getLogger(__name__)


class GatewayAPI:
    """Local HTTP API in front of the device controller"""

    def __init__(self, client, config: Dict):
        self.client = client
        self.config = config
        self.app = FastAPI(
            title="Controller RPC Gateway",
            description="Guarded RPC proxy and aggregated status for the local device controller",
            version="1.0.0"
        )
        self._setup_routes()

    def _setup_routes(self):
        """Setup FastAPI routes using modular approach"""
        controller_router = create_controller_routes(self.client, self.config)
        status_router = create_status_routes(self.client)

        self.app.include_router(controller_router)
        self.app.include_router(status_router)
        logger.debug(f"Registered {len(self.app.routes)} routes")


def create_client(config: Dict) -> ControllerClient:
    """Controller client wired to the configured secrets and controller section"""
    secrets = SecretStore(config.get('secrets', {}).get('file'))
    resolver = ConnectionResolver(config.get('controller', {}), secrets)
    return ControllerClient(resolver)


def create_app(config: Dict) -> FastAPI:
    api = GatewayAPI(create_client(config), config)
    return api.app
