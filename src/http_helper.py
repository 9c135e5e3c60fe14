# HTTP Helper for Controller Connections
# Session configuration for the local device controller (plain HTTP on the LAN)

import aiohttp
import logging

logger = logging.getLogger(__name__)

def create_controller_session(timeout_seconds: float = 5) -> aiohttp.ClientSession:
    """
    Create aiohttp session for a single controller exchange (always HTTP)
    Closed by the caller after each call; the fan-out opens one session per call
    """
    connector = aiohttp.TCPConnector(
        ssl=False,                  # Local controllers use HTTP only
        force_close=True,           # Force connection cleanup
        enable_cleanup_closed=True  # Additional cleanup
    )

    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds)
    )
