"""
Device aggregator - concurrent status snapshot of the controller and its sub-devices
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from rpc.errors import CallOutcome, capture, log_rpc_failure
from .models import (
    AggregatedDeviceData, AggregationConfig, DeviceIdentity, ThermostatConfig, ThermostatState,
)
from .normalize import (
    parse_actions, parse_device_identity, parse_schedules, parse_scripts,
    parse_thermostat_list, parse_thermostat_status, unavailable_thermostat,
)

logger = logging.getLogger(__name__)

AUTH_ERROR_MESSAGE = (
    "Controller rejected the configured credentials. "
    "Update SHELLY_USERNAME and SHELLY_PASSWORD secrets."
)


class AuthErrorSlot:
    """Holds the snapshot's authentication error; the first message recorded is kept"""

    def __init__(self):
        self.message: Optional[str] = None
        self.failed_methods: List[str] = []

    def record(self, method: str, message: str = AUTH_ERROR_MESSAGE) -> None:
        self.failed_methods.append(method)
        if self.message is None:
            self.message = message


class DeviceAggregator:
    """Fans out guarded controller calls and merges them into AggregatedDeviceData"""

    def __init__(self, client):
        self.client = client

    async def fetch_aggregated_status(self, config: Optional[AggregationConfig] = None,
                                      overrides: Optional[Dict[str, Any]] = None) -> AggregatedDeviceData:
        config = config or AggregationConfig()
        connection = self.client.connection_options(overrides)
        auth = AuthErrorSlot()

        controller, thermostats, scripts, actions, schedules = await asyncio.gather(
            self._fetch_identity(connection.host, auth, overrides),
            self._fetch_thermostats(config, auth, overrides),
            self._fetch_list('Script.List', config.include_scripts, auth, overrides,
                             lambda result: parse_scripts(result, set(config.script_ids))),
            self._fetch_list('Actions.List', config.include_actions, auth, overrides,
                             lambda result: parse_actions(result, set(config.action_ids))),
            self._fetch_list('Schedule.List', config.include_schedules, auth, overrides,
                             lambda result: parse_schedules(result, set(config.schedule_ids))),
        )

        if auth.message:
            logger.warning(f"Controller rejected credentials for: {', '.join(auth.failed_methods)}")

        return AggregatedDeviceData(
            controller=controller,
            thermostats=thermostats,
            scripts=scripts,
            actions=actions,
            schedules=schedules,
            controller_url=controller.url if controller and controller.url else connection.host,
            auth_error=auth.message,
        )

    async def _call(self, method: str, params: Optional[Dict[str, Any]],
                    overrides: Optional[Dict[str, Any]]) -> CallOutcome:
        return await capture(self.client.call(method, params, overrides=overrides))

    def _log_failure(self, outcome: CallOutcome, auth: AuthErrorSlot,
                     unsupported_message: Optional[str] = None, context: Optional[str] = None) -> None:
        """Log a failed call once; auth failures are collected and reported per snapshot"""
        error = outcome.error
        if outcome.is_auth_error:
            auth.record(error.method or 'unknown')
        elif outcome.is_unsupported and unsupported_message:
            logger.info(unsupported_message)
        else:
            log_rpc_failure(error, context)

    async def _fetch_identity(self, host: str, auth: AuthErrorSlot,
                              overrides: Optional[Dict[str, Any]]) -> Optional[DeviceIdentity]:
        outcome = await self._call('Shelly.GetDeviceInfo', None, overrides)
        if outcome.ok:
            return parse_device_identity(outcome.value, host)

        self._log_failure(outcome, auth)
        return None

    async def _resolve_thermostats(self, config: AggregationConfig, auth: AuthErrorSlot,
                                   overrides: Optional[Dict[str, Any]]) -> List[ThermostatConfig]:
        if config.thermostats:
            return list(config.thermostats)

        outcome = await self._call('Thermostat.List', None, overrides)
        if outcome.ok:
            return parse_thermostat_list(outcome.value)

        self._log_failure(outcome, auth, "Controller does not expose Thermostat.List; no thermostats discovered")
        return []

    async def _fetch_thermostats(self, config: AggregationConfig, auth: AuthErrorSlot,
                                 overrides: Optional[Dict[str, Any]]) -> List[ThermostatState]:
        thermostat_configs = await self._resolve_thermostats(config, auth, overrides)
        return list(await asyncio.gather(*[
            self._fetch_thermostat(thermo, auth, overrides) for thermo in thermostat_configs
        ]))

    async def _fetch_thermostat(self, thermo: ThermostatConfig, auth: AuthErrorSlot,
                                overrides: Optional[Dict[str, Any]]) -> ThermostatState:
        outcome = await self._call('BluTrv.GetStatus', {'id': thermo.id}, overrides)
        if outcome.ok:
            return parse_thermostat_status(thermo.id, thermo.label, outcome.value)

        self._log_failure(outcome, auth, context=f"thermostat {thermo.id}")
        return unavailable_thermostat(thermo)

    async def _fetch_list(self, method: str, enabled: bool, auth: AuthErrorSlot,
                          overrides: Optional[Dict[str, Any]], parse) -> list:
        if not enabled:
            return []

        outcome = await self._call(method, None, overrides)
        if outcome.ok:
            return parse(outcome.value)

        self._log_failure(outcome, auth, f"Controller does not expose {method}; skipping")
        return []
