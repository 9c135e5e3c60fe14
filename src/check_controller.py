"""
Controller credential check
Calls Shelly.GetDeviceInfo with the configured secrets and lists what the controller exposes
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Dict, List, Optional

from aggregation import AggregationConfig, DeviceAggregator
from config_loader import load_config
from api.main_api import create_client
from rpc import AuthenticationError, RpcError

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Verify controller RPC authentication")
    parser.add_argument('--config', default=os.environ.get('CONFIG_FILE', 'config/config.yaml'),
                        help="Path to the gateway configuration file")
    parser.add_argument('--host', help="Controller host, overrides secrets and config")
    parser.add_argument('--timeout', type=float, help="Per-call timeout in seconds")
    parser.add_argument('-v', '--verbose', action='store_true', help="Enable debug logging")
    return parser.parse_args(argv)


def _overrides(args: argparse.Namespace) -> Dict:
    overrides = {}
    if args.host:
        overrides['host'] = args.host
    if args.timeout:
        overrides['timeout_seconds'] = args.timeout
    return overrides


async def run_check(client, overrides: Optional[Dict] = None) -> int:
    """Print controller identity and inventory; return a process exit code"""
    connection = client.connection_options(overrides)
    print(f"Testing controller credentials against {connection.host}")

    try:
        info = await client.call('Shelly.GetDeviceInfo', overrides=overrides)
    except AuthenticationError as e:
        print(f"Authentication failed (HTTP {e.status}). Check SHELLY_USERNAME and SHELLY_PASSWORD.")
        return 1
    except RpcError as e:
        print(f"Controller call failed: {e.message}")
        return 1

    name = info.get('name') if isinstance(info, dict) and isinstance(info.get('name'), str) else 'Controller'
    print(f"Success: authenticated as {connection.username or 'anonymous'}. Controller name: {name}")

    snapshot = await DeviceAggregator(client).fetch_aggregated_status(AggregationConfig(), overrides)

    sections = [
        ("thermostats", [f"{t.label} (id: {t.id}, status: {t.status or 'ok'})" for t in snapshot.thermostats]),
        ("scripts", [f"{s.name} (id: {s.id}, enabled: {s.enabled}, running: {s.running})" for s in snapshot.scripts]),
        ("actions", [f"{a.name} (id: {a.id})" for a in snapshot.actions]),
        ("schedules", [f"{s.name} (id: {s.id}, enabled: {s.enabled})" for s in snapshot.schedules]),
    ]
    for title, lines in sections:
        if lines:
            print(f"\nDetected {title}:")
            for line in lines:
                print(f"  - {line}")

    if snapshot.auth_error:
        print(f"\n{snapshot.auth_error}")
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    config = load_config(args.config) if os.path.exists(args.config) else {}
    return asyncio.run(run_check(create_client(config), _overrides(args)))


if __name__ == "__main__":
    sys.exit(main())
