"""
Secret lookup for controller credentials
Environment variables take precedence over the optional secrets file
"""

import os
import logging
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

logger = logging.getLogger(__name__)


class SecretStore:
    """Resolves named secrets from the environment or a YAML/JSON secrets file"""

    def __init__(self, secrets_file: Optional[str] = None, environ: Optional[Dict[str, str]] = None):
        self.environ = environ if environ is not None else os.environ
        self.secrets_file = secrets_file or self.environ.get('SECRETS_FILE')
        self._cache: Optional[Dict[str, Any]] = None

    def _load(self) -> Dict[str, Any]:
        if self._cache is not None:
            return self._cache

        self._cache = {}
        if not self.secrets_file:
            return self._cache

        secrets_path = Path(self.secrets_file)
        if not secrets_path.exists():
            logger.warning(f"Secrets file not found: {secrets_path}")
            return self._cache

        try:
            with open(secrets_path, 'r') as f:
                # JSON documents are valid YAML
                content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.warning(f"Failed to load secrets file {secrets_path}: {e}")
            return self._cache

        if isinstance(content, dict):
            self._cache = content
        else:
            logger.warning(f"Secrets file {secrets_path} does not contain a mapping")
        return self._cache

    def get(self, name: str) -> Optional[str]:
        """Get secret value by name"""
        value = self.environ.get(name)
        if value is not None:
            return value
        value = self._load().get(name)
        return str(value) if value is not None else None
