"""
Controller RPC module - transport, authentication, allow-list guard and error taxonomy
"""

from .connection import ConnectionOptions, ConnectionResolver, normalize_host
from .errors import (
    RpcError, TransportError, AuthenticationError, UnsupportedMethodError,
    ApplicationError, MethodNotAllowedError, CallOutcome, capture, classify_error,
)
from .guard import ALLOWED_METHODS, ControllerClient, guard
from .negotiator import AuthNegotiator
from .transport import RpcTransport, RpcRequest, RpcResponse

__all__ = [
    'ConnectionOptions', 'ConnectionResolver', 'normalize_host',
    'RpcError', 'TransportError', 'AuthenticationError', 'UnsupportedMethodError',
    'ApplicationError', 'MethodNotAllowedError', 'CallOutcome', 'capture', 'classify_error',
    'ALLOWED_METHODS', 'ControllerClient', 'guard',
    'AuthNegotiator', 'RpcTransport', 'RpcRequest', 'RpcResponse',
]
