"""
Field normalization for controller payloads

Firmware versions name the same attribute differently. Each canonical field
is described by an ordered table of (candidate key, parser) pairs; the first
candidate that is present and parses wins. A dotted key looks inside a
nested object ("battery.percent").
"""

import math
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from .models import (
    ActionState, DeviceIdentity, ScheduleState, ScriptState, ThermostatConfig, ThermostatState,
)

logger = logging.getLogger(__name__)

Parser = Callable[[Any], Any]
FieldRule = Tuple[str, Parser]


# ---- parsers ----

def coerce_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if isinstance(value, float) and math.isnan(value) else value
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        if math.isnan(parsed):
            return None
        return int(parsed) if parsed.is_integer() and '.' not in value else parsed
    return None


def coerce_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == 'true':
            return True
        if lowered == 'false':
            return False
    return None


def coerce_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def coerce_int_id(value: Any) -> Optional[int]:
    number = coerce_number(value)
    if number is None or math.isinf(number) or int(number) != number:
        return None
    return int(number)


# ---- candidate tables ----

def _rules(parser: Parser, *keys: str) -> Tuple[FieldRule, ...]:
    return tuple((key, parser) for key in keys)


TARGET_TEMPERATURE_FIELDS = _rules(
    coerce_number,
    'thermostat.target_C', 'thermostat.target_t', 'thermostat.target',
    'thermostat.targetTemperature', 'thermostat.targetTemp',
    'target_C', 'target_t', 'target', 'targetTemperature', 'targetTemp',
)
CURRENT_TEMPERATURE_FIELDS = _rules(
    coerce_number,
    'thermostat.current_C', 'thermostat.current_t', 'thermostat.current',
    'thermostat.currentTemperature', 'thermostat.temperature',
    'current_C', 'current_t', 'current', 'currentTemperature', 'temperature',
)
BATTERY_FIELDS = _rules(
    coerce_number,
    'battery.battery', 'battery.battery_percent', 'battery.percent', 'battery',
)
VALVE_FIELDS = _rules(
    coerce_number,
    'valve.position', 'valve.pos', 'valve.value', 'pos', 'valve_position',
)
MODE_FIELDS = _rules(coerce_str, 'thermostat.mode', 'thermostat.thermostat_mode', 'mode', 'thermostat_mode')
STATUS_FIELDS = _rules(coerce_str, 'status', 'state')
HUMIDITY_FIELDS = _rules(coerce_number, 'humidity', 'thermostat.humidity')
ONLINE_FIELDS = _rules(coerce_bool, 'online', 'thermostat.online', 'paired')
LAST_UPDATE_FIELDS = _rules(coerce_number, 'last_updated_ts', 'ts', 'timestamp', '_updated')
THERMOSTAT_LABEL_FIELDS = _rules(coerce_str, 'name', 'label', 'room')

ENABLE_FIELDS = _rules(coerce_bool, 'enable', 'enabled')
RUNNING_FIELDS = _rules(coerce_bool, 'running', 'active')
NAME_FIELDS = _rules(coerce_str, 'label', 'name', 'title')
GROUP_FIELDS = _rules(coerce_str, 'group', 'category')
LAST_RUN_FIELDS = _rules(coerce_number, 'last_run', 'last_execution', 'last_exec_ts')
NEXT_RUN_FIELDS = _rules(coerce_number, 'next', 'next_run', 'next_ts', 'next_run_ts')

DISCOVERY_ID_FIELDS = (('id', str), ('name', str), ('mac', str))
DISCOVERY_LABEL_FIELDS = THERMOSTAT_LABEL_FIELDS

FIRMWARE_FIELDS = _rules(coerce_str, 'fw_id', 'ver')
UPTIME_FIELDS = _rules(coerce_number, 'uptime', 'sys_uptime')


_MISSING = object()


def _lookup(source: Dict[str, Any], key: str) -> Any:
    current: Any = source
    for part in key.split('.'):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def pick_first(source: Any, rules: Iterable[FieldRule]) -> Any:
    """Value of the first candidate key that is present and parses to non-None"""
    if not isinstance(source, dict):
        return None

    for key, parser in rules:
        raw = _lookup(source, key)
        if raw is _MISSING or raw is None:
            continue
        value = parser(raw)
        if value is not None:
            return value
    return None


def _as_object(value: Any) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) else None


# ---- payload parsers ----

def parse_device_identity(payload: Any, url: Optional[str]) -> Optional[DeviceIdentity]:
    if not isinstance(payload, dict):
        return None

    return DeviceIdentity(
        name=coerce_str(payload.get('name')),
        model=coerce_str(payload.get('model')),
        firmware=pick_first(payload, FIRMWARE_FIELDS),
        mac=coerce_str(payload.get('mac')),
        uptime_seconds=pick_first(payload, UPTIME_FIELDS),
        url=url,
    )


def parse_thermostat_list(payload: Any) -> List[ThermostatConfig]:
    entries = payload.get('thermostats') if isinstance(payload, dict) else None
    if not isinstance(entries, list):
        return []

    configs = []
    for entry in entries:
        device_id = pick_first(entry, DISCOVERY_ID_FIELDS)
        if not device_id:
            continue
        configs.append(ThermostatConfig(id=device_id, label=pick_first(entry, DISCOVERY_LABEL_FIELDS)))
    return configs


def parse_thermostat_status(device_id: str, label: Optional[str], payload: Any) -> ThermostatState:
    root = payload if isinstance(payload, dict) else {}

    return ThermostatState(
        id=device_id,
        label=label or pick_first(root, THERMOSTAT_LABEL_FIELDS) or device_id,
        status=pick_first(root, STATUS_FIELDS),
        mode=pick_first(root, MODE_FIELDS),
        target_temperature=pick_first(root, TARGET_TEMPERATURE_FIELDS),
        current_temperature=pick_first(root, CURRENT_TEMPERATURE_FIELDS),
        battery=pick_first(root, BATTERY_FIELDS),
        valve_position=pick_first(root, VALVE_FIELDS),
        humidity=pick_first(root, HUMIDITY_FIELDS),
        online=pick_first(root, ONLINE_FIELDS),
        last_update_ts=pick_first(root, LAST_UPDATE_FIELDS),
        raw_status=_as_object(payload),
    )


def unavailable_thermostat(config: ThermostatConfig) -> ThermostatState:
    """Placeholder for a sub-device whose status call failed"""
    return ThermostatState(id=config.id, label=config.label or config.id, status='unavailable')


def _entries(payload: Any, *keys: str) -> List[Any]:
    if not isinstance(payload, dict):
        return []
    for key in keys:
        if isinstance(payload.get(key), list):
            return payload[key]
    return []


def parse_scripts(payload: Any, filter_ids: Optional[Set[int]] = None) -> List[ScriptState]:
    scripts = []
    for entry in _entries(payload, 'scripts'):
        script_id = coerce_int_id(entry.get('id')) if isinstance(entry, dict) else None
        if script_id is None or (filter_ids and script_id not in filter_ids):
            continue
        scripts.append(ScriptState(
            id=script_id,
            name=pick_first(entry, NAME_FIELDS) or f"Script {script_id}",
            enabled=bool(pick_first(entry, ENABLE_FIELDS)),
            running=bool(pick_first(entry, RUNNING_FIELDS)),
            last_run_ts=pick_first(entry, LAST_RUN_FIELDS),
            raw=entry,
        ))
    return scripts


def parse_actions(payload: Any, filter_ids: Optional[Set[str]] = None) -> List[ActionState]:
    actions = []
    for entry in _entries(payload, 'actions'):
        if not isinstance(entry, dict):
            continue
        raw_id = entry.get('id') if entry.get('id') not in (None, '') else entry.get('name')
        if raw_id in (None, ''):
            continue
        action_id = str(raw_id)
        if filter_ids and action_id not in filter_ids:
            continue
        actions.append(ActionState(
            id=action_id,
            name=pick_first(entry, NAME_FIELDS) or action_id,
            enabled=pick_first(entry, ENABLE_FIELDS),
            group=pick_first(entry, GROUP_FIELDS),
            raw=entry,
        ))
    return actions


def parse_schedules(payload: Any, filter_ids: Optional[Set[int]] = None) -> List[ScheduleState]:
    schedules = []
    for entry in _entries(payload, 'schedules', 'jobs'):
        schedule_id = coerce_int_id(entry.get('id')) if isinstance(entry, dict) else None
        if schedule_id is None or (filter_ids and schedule_id not in filter_ids):
            continue
        schedules.append(ScheduleState(
            id=schedule_id,
            name=pick_first(entry, NAME_FIELDS) or f"Schedule {schedule_id}",
            enabled=bool(pick_first(entry, ENABLE_FIELDS)),
            next_run_ts=pick_first(entry, NEXT_RUN_FIELDS),
            raw=entry,
        ))
    return schedules
