"""
Controller connection settings
Resolved fresh for every call from overrides, secrets and configuration
"""

import re
import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_HOST = "http://192.168.2.163"
DEFAULT_TIMEOUT_SECONDS = 5.0

_SCHEME_PATTERN = re.compile(r'^https?://', re.IGNORECASE)


@dataclass(frozen=True)
class ConnectionOptions:
    """Where and how to reach the device controller"""
    host: str
    username: Optional[str] = None
    password: Optional[str] = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @property
    def has_credentials(self) -> bool:
        return bool(self.username) and bool(self.password)

    @property
    def rpc_url(self) -> str:
        return f"{self.host}/rpc"


def normalize_host(raw_host: Optional[str]) -> str:
    """Turn a bare host or URL into an absolute URL without trailing slash"""
    host = (raw_host or '').strip()
    if not host:
        return DEFAULT_HOST

    host = host.rstrip('/')
    if _SCHEME_PATTERN.match(host):
        return host
    return f"http://{host}"


def _first_present(*values) -> Optional[Any]:
    for value in values:
        if value is not None and value != '':
            return value
    return None


class ConnectionResolver:
    """Builds ConnectionOptions from overrides, the secret store and the controller config section"""

    def __init__(self, controller_config: Optional[Dict[str, Any]] = None, secrets=None):
        self.controller_config = controller_config or {}
        self.secrets = secrets

    def _secret(self, name: str) -> Optional[str]:
        if self.secrets is None:
            return None
        return self.secrets.get(name)

    def resolve(self, overrides: Optional[Dict[str, Any]] = None) -> ConnectionOptions:
        overrides = overrides or {}
        cfg = self.controller_config

        host = _first_present(overrides.get('host'), self._secret('SHELLY_HOST'), cfg.get('host'))
        username = _first_present(overrides.get('username'), self._secret('SHELLY_USERNAME'), cfg.get('username'))
        password = _first_present(overrides.get('password'), self._secret('SHELLY_PASSWORD'), cfg.get('password'))
        timeout = _first_present(overrides.get('timeout_seconds'), cfg.get('timeout_seconds'), DEFAULT_TIMEOUT_SECONDS)

        return ConnectionOptions(
            host=normalize_host(host),
            username=username,
            password=password,
            timeout_seconds=float(timeout),
        )

