"""
Aggregation data structures
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple


def _camel_case(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.capitalize() for part in rest)


def _camel_case_dict(items) -> Dict[str, Any]:
    return {_camel_case(key): value for key, value in items}


@dataclass(frozen=True)
class ThermostatConfig:
    """Sub-device the caller wants reported"""
    id: str
    label: Optional[str] = None


@dataclass(frozen=True)
class AggregationConfig:
    """What a status snapshot should contain"""
    refresh_seconds: int = 15
    thermostats: Tuple[ThermostatConfig, ...] = ()
    include_scripts: bool = True
    include_actions: bool = True
    include_schedules: bool = True
    script_ids: Tuple[int, ...] = ()
    action_ids: Tuple[str, ...] = ()
    schedule_ids: Tuple[int, ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'AggregationConfig':
        data = data or {}
        thermostats = []
        for item in data.get('thermostats') or []:
            if isinstance(item, dict) and item.get('id') not in (None, ''):
                thermostats.append(ThermostatConfig(id=str(item['id']), label=item.get('label')))

        def _int_ids(values) -> Tuple[int, ...]:
            ids = []
            for value in values or []:
                try:
                    ids.append(int(value))
                except (TypeError, ValueError):
                    continue
            return tuple(ids)

        return cls(
            refresh_seconds=int(data.get('refresh_seconds', 15)),
            thermostats=tuple(thermostats),
            include_scripts=data.get('include_scripts', True) is not False,
            include_actions=data.get('include_actions', True) is not False,
            include_schedules=data.get('include_schedules', True) is not False,
            script_ids=_int_ids(data.get('script_ids')),
            action_ids=tuple(str(value) for value in data.get('action_ids') or []),
            schedule_ids=_int_ids(data.get('schedule_ids')),
        )


@dataclass(frozen=True)
class DeviceIdentity:
    name: Optional[str] = None
    model: Optional[str] = None
    firmware: Optional[str] = None
    mac: Optional[str] = None
    uptime_seconds: Optional[float] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class ThermostatState:
    id: str
    label: Optional[str] = None
    status: Optional[str] = None
    mode: Optional[str] = None
    target_temperature: Optional[float] = None
    current_temperature: Optional[float] = None
    battery: Optional[float] = None
    valve_position: Optional[float] = None
    humidity: Optional[float] = None
    online: Optional[bool] = None
    last_update_ts: Optional[float] = None
    raw_status: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class ScriptState:
    id: int
    name: str
    enabled: bool
    running: bool
    last_run_ts: Optional[float] = None
    raw: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class ActionState:
    id: str
    name: str
    enabled: Optional[bool] = None
    group: Optional[str] = None
    raw: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class ScheduleState:
    id: int
    name: str
    enabled: bool
    next_run_ts: Optional[float] = None
    raw: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class AggregatedDeviceData:
    """One status snapshot; the lists are always present, possibly empty"""
    controller: Optional[DeviceIdentity] = None
    thermostats: List[ThermostatState] = field(default_factory=list)
    scripts: List[ScriptState] = field(default_factory=list)
    actions: List[ActionState] = field(default_factory=list)
    schedules: List[ScheduleState] = field(default_factory=list)
    controller_url: Optional[str] = None
    auth_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON body with camelCase keys; raw controller payloads are passed through untouched"""
        return asdict(self, dict_factory=_camel_case_dict)
