"""
Configuration loader for the controller gateway
Loads and validates configuration from YAML files
"""

import yaml
import logging
from typing import Dict, Any
from pathlib import Path
from datetime import datetime
import pytz

logger = logging.getLogger(__name__)

def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file with validation
    """
    try:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.error(f"Configuration file not found: {config_path}")
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r') as f:
            config = yaml.safe_load(f)

        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ValueError(f"Configuration in {config_path} must be a mapping")

        # Apply defaults
        config = _apply_defaults(config)

        # Validate sections
        _validate_config(config)

        logger.info(f"Configuration loaded from {config_path}")
        return config

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

def _validate_config(config: Dict) -> None:
    """Validate configuration values"""
    controller = config['controller']
    timeout = controller.get('timeout_seconds')
    if not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0:
        raise ValueError("controller.timeout_seconds must be a positive number")

    for field in ['host', 'username', 'password']:
        value = controller.get(field)
        if value is not None and not isinstance(value, str):
            raise ValueError(f"controller.{field} must be a string")

    port = config['api'].get('port')
    if not isinstance(port, int) or not 0 < port < 65536:
        raise ValueError("api.port must be an integer between 1 and 65535")

    tz_name = config['logging'].get('timezone')
    if tz_name not in pytz.all_timezones_set:
        raise ValueError(f"Unknown logging.timezone: {tz_name}")

    if config['controller'].get('password') and not config['controller'].get('username'):
        logger.warning("controller.password is set without controller.username - credentials will be ignored")

def _apply_defaults(config: Dict) -> Dict:
    """Apply default values to configuration"""

    section_defaults = {
        'controller': {
            'host': None,
            'username': None,
            'password': None,
            'timeout_seconds': 5
        },
        'dashboards': {
            'dir': 'dashboards'
        },
        'secrets': {
            'file': None
        },
        'api': {
            'host': '0.0.0.0',
            'port': 8000
        },
        'logging': {
            'level': 'INFO',
            'file': 'logs/gateway.log',
            'console_output': True,
            'timezone': 'UTC'
        }
    }

    for section, defaults in section_defaults.items():
        if not isinstance(config.get(section), dict):
            config[section] = {}
        for key, default_value in defaults.items():
            if key not in config[section]:
                config[section][key] = default_value

    return config


class ZoneFormatter(logging.Formatter):
    """Formatter that displays timestamps in a configured timezone"""

    def __init__(self, fmt=None, tz_name: str = 'UTC'):
        super().__init__(fmt)
        self.tz = pytz.timezone(tz_name)

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        else:
            # Default format: YYYY-MM-DD HH:MM:SS TZ
            return dt.strftime('%Y-%m-%d %H:%M:%S %Z')

def setup_logging(config: Dict) -> None:
    """Setup logging based on configuration with zone-aware timestamps"""
    log_config = config.get('logging', {})
    level = log_config.get('level', 'INFO')

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = ZoneFormatter(log_format, log_config.get('timezone', 'UTC'))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper()))

    # Console handler
    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    # File handler
    log_file = log_config.get('file')
    if log_file:
        # Create logs directory if it doesn't exist
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    logger.info(f"Logging configured: level={level}, console={log_config.get('console_output', True)}, file={log_file}")

def get_sample_config() -> Dict:
    """Return a sample configuration for reference"""
    return {
        "controller": {
            "host": "192.168.2.163",
            "username": "admin",
            "password": "change-me",   # Prefer SHELLY_PASSWORD in the secrets file
            "timeout_seconds": 5
        },
        "dashboards": {
            "dir": "dashboards"
        },
        "secrets": {
            "file": "config/secrets.yaml"
        },
        "api": {
            "host": "0.0.0.0",
            "port": 8000
        },
        "logging": {
            "level": "INFO",
            "file": "logs/gateway.log",
            "console_output": True,
            "timezone": "America/New_York"
        }
    }
