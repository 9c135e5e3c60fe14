"""
Authentication negotiator
Sends with Basic credentials first and answers a Digest challenge exactly once
"""

import logging
from typing import Any, Callable, Dict, Optional

from .connection import ConnectionOptions
from .digest import build_basic_authorization, build_digest_authorization, parse_digest_challenge
from .errors import ApplicationError, RpcError, classify_error
from .transport import RPC_PATH, RpcResponse, RpcTransport

logger = logging.getLogger(__name__)


class AuthNegotiator:
    """Wraps RpcTransport with the Basic -> Digest authentication exchange"""

    def __init__(self, transport: RpcTransport, cnonce_factory: Optional[Callable[[], str]] = None):
        self.transport = transport
        # Tests inject a fixed cnonce; None means a fresh random one per attempt
        self.cnonce_factory = cnonce_factory

    async def send(self, method: str, params: Optional[Dict[str, Any]], options: ConnectionOptions) -> Any:
        """Run one RPC and return its result, raising a classified RpcError on failure

        Failures are logged by the caller.
        """
        try:
            return await self._send(method, params, options)
        except RpcError as e:
            error = classify_error(e)
            if error is e:
                raise
            raise error from e

    async def _send(self, method: str, params: Optional[Dict[str, Any]], options: ConnectionOptions) -> Any:
        request = self.transport.build_request(method, params)
        authorization = build_basic_authorization(options.username, options.password)

        response = await self.transport.post(options, request, authorization)

        if response.status == 401:
            response = await self._answer_challenge(response, request, options)

        if not response.ok:
            raise RpcError(
                f"RPC HTTP {response.status} {response.reason}".rstrip(),
                status=response.status, method=method
            )

        return self._unwrap(method, response)

    async def _answer_challenge(self, response: RpcResponse, request, options: ConnectionOptions) -> RpcResponse:
        challenge = parse_digest_challenge(response.www_authenticate)
        if challenge is None:
            logger.debug(f"RPC {request.method} got 401 without a usable Digest challenge")
            return response

        cnonce = self.cnonce_factory() if self.cnonce_factory else None
        authorization = build_digest_authorization(
            options.username, options.password, challenge, RPC_PATH, 'POST', cnonce=cnonce
        )
        if authorization is None:
            logger.debug(f"RPC {request.method} got a Digest challenge but no credentials are configured")
            return response

        logger.debug(f"Retrying RPC {request.method} with Digest auth (realm={challenge['realm']})")
        return await self.transport.post(options, request, authorization)

    def _unwrap(self, method: str, response: RpcResponse) -> Any:
        payload = response.payload
        if not isinstance(payload, dict):
            return None

        error = payload.get('error')
        if error:
            message = error.get('message') if isinstance(error, dict) else None
            if not isinstance(message, str):
                message = 'Unknown error'
            code = error.get('code') if isinstance(error, dict) else None
            code_text = f" {code}" if code is not None else ''
            error_type = RpcError if code is not None else ApplicationError
            raise error_type(
                f"RPC error{code_text}: {message}",
                status=response.status, code=code, method=method
            )

        return payload.get('result')
