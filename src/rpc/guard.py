"""
Method allow-list guard and the guarded controller client
"""

import logging
from typing import Any, Dict, Optional

from .connection import ConnectionOptions, ConnectionResolver
from .errors import MethodNotAllowedError
from .negotiator import AuthNegotiator
from .transport import RpcTransport

logger = logging.getLogger(__name__)

# The RPC proxy is reachable from browsers on the LAN. Adding a method here
# lets any local page drive it on the controller.
ALLOWED_METHODS = frozenset({
    'Shelly.GetDeviceInfo',
    'Shelly.GetComponents',
    'Thermostat.List',
    'Thermostat.SetTargetTemperature',
    'Thermostat.SetMode',
    'Thermostat.SetProfile',
    'BluTrv.GetStatus',
    'BluTrv.GetRemoteStatus',
    'BluTrv.GetRemoteConfig',
    'BluTrv.SetConfig',
    'BluTrv.Call',
    'Script.List',
    'Script.Start',
    'Script.Stop',
    'Script.Enable',
    'Script.Disable',
    'Actions.List',
    'Actions.Run',
    'Schedule.List',
})


def guard(method: str) -> str:
    """Raise MethodNotAllowedError unless method is on the allow-list"""
    if method not in ALLOWED_METHODS:
        logger.warning(f"Blocked RPC method {method!r}: not on the allow-list")
        raise MethodNotAllowedError(f"RPC method {method} is not allowed", method=method)
    return method


class ControllerClient:
    """Guard -> Negotiator -> Transport pipeline used by the aggregator and the API"""

    def __init__(self, resolver: ConnectionResolver, negotiator: Optional[AuthNegotiator] = None):
        self.resolver = resolver
        self.negotiator = negotiator or AuthNegotiator(RpcTransport())

    def connection_options(self, overrides: Optional[Dict[str, Any]] = None) -> ConnectionOptions:
        return self.resolver.resolve(overrides)

    async def call(self, method: str, params: Optional[Dict[str, Any]] = None,
                   overrides: Optional[Dict[str, Any]] = None) -> Any:
        guard(method)
        options = self.connection_options(overrides)
        return await self.negotiator.send(method, params, options)
