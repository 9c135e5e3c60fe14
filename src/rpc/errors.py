"""
RPC error taxonomy
Separates transport failures, rejected credentials, missing capabilities and application errors
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Optional

logger = logging.getLogger(__name__)

AUTH_STATUSES = (401, 403)
UNSUPPORTED_CODE = 404


class RpcError(Exception):
    """Failed controller call

    status is the HTTP status for HTTP-layer failures, code the application
    error code from the response envelope. Application failures carry both.
    """

    def __init__(self, message: str, status: Optional[int] = None, code: Optional[int] = None,
                 method: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.method = method

    def __repr__(self):
        return (f"{type(self).__name__}({self.message!r}, status={self.status}, "
                f"code={self.code}, method={self.method!r})")


class TransportError(RpcError):
    """Network failure, timeout, unreadable body or unexpected HTTP status"""


class AuthenticationError(RpcError):
    """Controller rejected the credentials (HTTP 401/403)"""


class UnsupportedMethodError(RpcError):
    """Method not available on this firmware (application code 404)"""


class ApplicationError(RpcError):
    """Controller answered with an application error code"""


class MethodNotAllowedError(RpcError):
    """Method is not on the allow-list; raised before any network activity"""


_TYPED_ERRORS = (TransportError, AuthenticationError, UnsupportedMethodError,
                 ApplicationError, MethodNotAllowedError)


def classify_error(error: RpcError) -> RpcError:
    """Map a raw RpcError onto the typed taxonomy"""
    if isinstance(error, _TYPED_ERRORS):
        return error

    if error.status in AUTH_STATUSES:
        error_type = AuthenticationError
    elif error.code == UNSUPPORTED_CODE or (error.code is None and error.status == UNSUPPORTED_CODE):
        error_type = UnsupportedMethodError
    elif error.code is not None:
        error_type = ApplicationError
    else:
        error_type = TransportError

    classified = error_type(error.message, status=error.status, code=error.code, method=error.method)
    classified.__cause__ = error.__cause__
    return classified


def log_rpc_failure(error: RpcError, context: Optional[str] = None) -> None:
    """Log a classified failure at the level its category calls for"""
    method = error.method or 'unknown'
    if context:
        method = f"{method} ({context})"
    if isinstance(error, AuthenticationError):
        logger.warning(f"RPC {method} unauthorized (HTTP {error.status})")
    elif isinstance(error, UnsupportedMethodError):
        logger.debug(f"RPC {method} not found (code 404) - method not supported on this device")
    elif isinstance(error, ApplicationError):
        logger.error(f"RPC {method} failed with code {error.code}: {error.message}")
    else:
        logger.error(f"RPC {method} failed: {error.message}")


@dataclass(frozen=True)
class CallOutcome:
    """Result of a single call: either a value or a typed error"""
    value: Any = None
    error: Optional[RpcError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def is_auth_error(self) -> bool:
        return isinstance(self.error, AuthenticationError)

    @property
    def is_unsupported(self) -> bool:
        return isinstance(self.error, UnsupportedMethodError)


async def capture(call: Awaitable) -> CallOutcome:
    """Await a controller call and fold RpcError into a CallOutcome"""
    try:
        return CallOutcome(value=await call)
    except RpcError as e:
        return CallOutcome(error=classify_error(e))
