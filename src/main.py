"""
Controller RPC Gateway - Main Entry Point
"""

import asyncio
import sys
import logging
import os

import uvicorn

from config_loader import load_config, setup_logging
from api.main_api import create_app

logger = logging.getLogger(__name__)

async def main():
    """Main entry point"""
    try:
        # Get config file path from environment variable or use default
        config_path = os.environ.get('CONFIG_FILE', 'config/config.yaml')
        config = load_config(config_path)
        setup_logging(config)
        logger.info(f"Using configuration file: {config_path}")

        api_config = config['api']
        server = uvicorn.Server(uvicorn.Config(
            create_app(config),
            host=api_config['host'],
            port=api_config['port'],
            log_config=None
        ))

        logger.info(f"[LAUNCH] Serving gateway API on {api_config['host']}:{api_config['port']}")
        await server.serve()

    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.error(f"Server failed: {e}")
        return 1

    return 0

def cli():
    try:
        exit_code = asyncio.run(main())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        sys.exit(0)

if __name__ == "__main__":
    cli()
