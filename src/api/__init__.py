"""
API module for the controller gateway
"""

from .main_api import GatewayAPI, create_app, create_client
from .controller_routes import create_controller_routes
from .status_routes import create_status_routes

__all__ = ['GatewayAPI', 'create_app', 'create_client', 'create_controller_routes', 'create_status_routes']
