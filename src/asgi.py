"""
ASGI entry point for uvicorn
This module exposes the FastAPI app for use with uvicorn command line
"""

import os
import logging

from config_loader import load_config, setup_logging
from api.main_api import create_app

# Load configuration
config = load_config(os.environ.get('CONFIG_FILE', 'config/config.yaml'))
setup_logging(config)

logger = logging.getLogger(__name__)

# Expose the FastAPI app for uvicorn
app = create_app(config)

logger.info("ASGI app ready for uvicorn")
