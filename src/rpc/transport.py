"""
RPC transport - one JSON request/response exchange with the controller
"""

import json
import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp

from http_helper import create_controller_session
from .connection import ConnectionOptions
from .errors import TransportError

logger = logging.getLogger(__name__)

RPC_PATH = "/rpc"


@dataclass(frozen=True)
class RpcRequest:
    id: int
    method: str
    params: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps({"id": self.id, "method": self.method, "params": self.params})


@dataclass
class RpcResponse:
    status: int
    reason: str
    www_authenticate: Optional[str] = None
    payload: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class RpcTransport:
    """
    Posts RPC envelopes to {host}/rpc
    Request ids come from a counter owned by this instance
    """

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self._session = session
        self._ids = itertools.count(1)

    def build_request(self, method: str, params: Optional[Dict[str, Any]] = None) -> RpcRequest:
        return RpcRequest(id=next(self._ids), method=method, params=dict(params or {}))

    async def post(self, options: ConnectionOptions, request: RpcRequest,
                   authorization: Optional[str] = None) -> RpcResponse:
        """Send one request; network failures and timeouts raise TransportError"""
        headers = {'Content-Type': 'application/json'}
        if authorization:
            headers['Authorization'] = authorization

        try:
            if self._session is not None:
                return await self._exchange(self._session, options, request, headers)
            async with create_controller_session(options.timeout_seconds) as session:
                return await self._exchange(session, options, request, headers)
        except asyncio.TimeoutError as e:
            # aiohttp does not say whether connect or read timed out
            raise TransportError(
                f"RPC {request.method} timed out after {options.timeout_seconds}s",
                method=request.method
            ) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"RPC {request.method} connection failed: {e}", method=request.method) from e

    async def _exchange(self, session, options: ConnectionOptions, request: RpcRequest,
                        headers: Dict[str, str]) -> RpcResponse:
        timeout = aiohttp.ClientTimeout(total=options.timeout_seconds)
        async with session.post(options.rpc_url, data=request.to_json(), headers=headers,
                                timeout=timeout) as response:
            result = RpcResponse(
                status=response.status,
                reason=response.reason or '',
                www_authenticate=response.headers.get('WWW-Authenticate'),
            )
            if not result.ok:
                return result

            try:
                result.payload = await response.json(content_type=None)
            except ValueError as e:
                raise TransportError(
                    f"RPC {request.method} returned an unreadable body",
                    status=response.status, method=request.method
                ) from e
            return result
