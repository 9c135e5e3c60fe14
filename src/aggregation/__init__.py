"""
Aggregation module for controller status snapshots
"""

from .aggregator import DeviceAggregator, AUTH_ERROR_MESSAGE
from .models import (
    AggregationConfig, AggregatedDeviceData, DeviceIdentity, ThermostatConfig,
    ThermostatState, ScriptState, ActionState, ScheduleState,
)

__all__ = [
    'DeviceAggregator', 'AUTH_ERROR_MESSAGE',
    'AggregationConfig', 'AggregatedDeviceData', 'DeviceIdentity', 'ThermostatConfig',
    'ThermostatState', 'ScriptState', 'ActionState', 'ScheduleState',
]
