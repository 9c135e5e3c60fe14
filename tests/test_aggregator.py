"""Tests for aggregation/aggregator.py - concurrent status snapshot with partial failure."""

import asyncio
import json
import logging
import time

from aggregation import AUTH_ERROR_MESSAGE, AggregationConfig, DeviceAggregator, ThermostatConfig
from rpc import AuthNegotiator, ConnectionResolver, ControllerClient, RpcError, RpcTransport, guard

from conftest import FakeSession, MockResponse, StaticSecrets

DEVICE_INFO = {"name": "Shelly Blue Gen3", "model": "SBG3", "fw_id": "2025.1.0",
               "mac": "A1B2C3", "uptime": 3600}


class FakeClient:
    """Guarded client double; handlers map method name to a result or exception."""

    def __init__(self, handlers, delay=0.0):
        self.handlers = handlers
        self.delay = delay
        self.calls = []
        self.resolver = ConnectionResolver({}, StaticSecrets({"SHELLY_HOST": "192.168.2.163"}))

    def connection_options(self, overrides=None):
        return self.resolver.resolve(overrides)

    async def call(self, method, params=None, overrides=None):
        guard(method)
        self.calls.append((method, params))
        if self.delay:
            await asyncio.sleep(self.delay)
        handler = self.handlers.get(method)
        if handler is None:
            raise RpcError("No handler", status=200, code=404, method=method)
        if callable(handler):
            handler = handler(params)
        if isinstance(handler, Exception):
            raise handler
        return handler


def _auth_failure(method):
    return RpcError("RPC HTTP 401 Unauthorized", status=401, method=method)


def _full_handlers():
    return {
        "Shelly.GetDeviceInfo": DEVICE_INFO,
        "Script.List": {"scripts": [
            {"id": 1, "name": "Warm Morning", "enable": True, "running": False, "last_run": 1710000000},
        ]},
        "Actions.List": {"actions": [
            {"id": "boost", "name": "Boost Heating", "enabled": True, "group": "Heating"},
        ]},
        "Schedule.List": {"schedules": [
            {"id": 5, "name": "Weekday", "enable": True, "next_run_ts": 1710003600},
        ]},
        "BluTrv.GetStatus": {
            "id": "trv-1", "status": "ok", "mode": "heat", "target_t": 22, "current_t": 21.5,
            "battery": {"percent": 85}, "valve": {"position": 40}, "room": "Living Room",
        },
    }


def test_aggregates_everything():
    async def _run():
        client = FakeClient(_full_handlers())
        config = AggregationConfig(thermostats=(ThermostatConfig(id="trv-1", label="Living Room"),))
        return client, await DeviceAggregator(client).fetch_aggregated_status(config)

    client, data = asyncio.run(_run())

    assert data.auth_error is None
    assert data.controller_url == "http://192.168.2.163"
    assert data.controller.name == "Shelly Blue Gen3"
    assert data.controller.firmware == "2025.1.0"
    assert data.controller.uptime_seconds == 3600
    assert data.controller.url == "http://192.168.2.163"

    assert len(data.thermostats) == 1
    thermo = data.thermostats[0]
    assert (thermo.id, thermo.label, thermo.status, thermo.mode) == ("trv-1", "Living Room", "ok", "heat")
    assert thermo.target_temperature == 22
    assert thermo.current_temperature == 21.5
    assert thermo.battery == 85
    assert thermo.valve_position == 40
    assert ("BluTrv.GetStatus", {"id": "trv-1"}) in client.calls
    # Explicit thermostat list skips discovery
    assert all(method != "Thermostat.List" for method, _ in client.calls)

    script = data.scripts[0]
    assert (script.id, script.name, script.enabled, script.running, script.last_run_ts) == \
        (1, "Warm Morning", True, False, 1710000000)
    action = data.actions[0]
    assert (action.id, action.name, action.enabled, action.group) == ("boost", "Boost Heating", True, "Heating")
    schedule = data.schedules[0]
    assert (schedule.id, schedule.name, schedule.enabled, schedule.next_run_ts) == (5, "Weekday", True, 1710003600)


def test_auth_failure_on_identity_sets_auth_error_and_empty_lists():
    async def _run():
        handlers = {method: _auth_failure(method) for method in
                    ["Shelly.GetDeviceInfo", "Thermostat.List", "Script.List", "Actions.List", "Schedule.List"]}
        return await DeviceAggregator(FakeClient(handlers)).fetch_aggregated_status(AggregationConfig())

    data = asyncio.run(_run())

    assert data.auth_error == AUTH_ERROR_MESSAGE
    assert data.controller is None
    assert data.thermostats == []
    assert data.scripts == []
    assert data.actions == []
    assert data.schedules == []
    assert data.controller_url == "http://192.168.2.163"


def test_auth_error_only_on_identity_still_reported():
    async def _run():
        handlers = _full_handlers()
        handlers["Shelly.GetDeviceInfo"] = _auth_failure("Shelly.GetDeviceInfo")
        handlers["Thermostat.List"] = {"thermostats": []}
        return await DeviceAggregator(FakeClient(handlers)).fetch_aggregated_status(AggregationConfig())

    data = asyncio.run(_run())
    assert data.auth_error == AUTH_ERROR_MESSAGE
    assert data.controller is None
    assert len(data.scripts) == 1


def test_single_device_failure_degrades_only_that_device():
    async def _run():
        def status(params):
            if params["id"] == "trv-2":
                return RpcError("RPC HTTP 500", status=500, method="BluTrv.GetStatus")
            return {"id": params["id"], "target_C": 20, "status": "ok"}

        handlers = _full_handlers()
        handlers["BluTrv.GetStatus"] = status
        config = AggregationConfig(thermostats=tuple(
            ThermostatConfig(id=f"trv-{n}", label=f"Room {n}") for n in (1, 2, 3)
        ))
        return await DeviceAggregator(FakeClient(handlers)).fetch_aggregated_status(config)

    data = asyncio.run(_run())

    assert [t.id for t in data.thermostats] == ["trv-1", "trv-2", "trv-3"]
    assert [t.status for t in data.thermostats] == ["ok", "unavailable", "ok"]
    failed = data.thermostats[1]
    assert failed.label == "Room 2"
    assert failed.raw_status is None
    assert failed.target_temperature is None
    assert data.thermostats[0].target_temperature == 20
    assert data.auth_error is None


def test_discovery_used_when_no_explicit_list():
    async def _run():
        handlers = _full_handlers()
        handlers["Thermostat.List"] = {"thermostats": [
            {"id": "trv-9", "name": "Office"},
            {"mac": "AA:BB"},
            {"room": "no id"},
        ]}
        handlers["BluTrv.GetStatus"] = lambda params: {"id": params["id"], "targetTemperature": "19.5"}
        client = FakeClient(handlers)
        return client, await DeviceAggregator(client).fetch_aggregated_status(AggregationConfig())

    client, data = asyncio.run(_run())

    assert [(t.id, t.label) for t in data.thermostats] == [("trv-9", "Office"), ("AA:BB", "AA:BB")]
    assert data.thermostats[0].target_temperature == 19.5


def test_discovery_unsupported_falls_back_to_empty():
    async def _run():
        handlers = _full_handlers()
        # No Thermostat.List handler -> application code 404
        return await DeviceAggregator(FakeClient(handlers)).fetch_aggregated_status(AggregationConfig())

    data = asyncio.run(_run())
    assert data.thermostats == []
    assert data.auth_error is None
    assert len(data.scripts) == 1


def test_unsupported_and_failing_lists_are_empty():
    async def _run():
        handlers = _full_handlers()
        del handlers["Script.List"]
        handlers["Actions.List"] = RpcError("RPC HTTP 500", status=500, method="Actions.List")
        handlers["Schedule.List"] = RpcError("timed out", method="Schedule.List")
        return await DeviceAggregator(FakeClient(handlers)).fetch_aggregated_status(AggregationConfig())

    data = asyncio.run(_run())
    assert data.scripts == []
    assert data.actions == []
    assert data.schedules == []
    assert data.controller is not None
    assert data.auth_error is None


def test_disabled_lists_are_not_called():
    async def _run():
        client = FakeClient(_full_handlers())
        config = AggregationConfig(thermostats=(ThermostatConfig(id="trv-1"),), include_scripts=False,
                                   include_actions=False, include_schedules=False)
        return client, await DeviceAggregator(client).fetch_aggregated_status(config)

    client, data = asyncio.run(_run())
    called = {method for method, _ in client.calls}
    assert called == {"Shelly.GetDeviceInfo", "BluTrv.GetStatus"}
    assert data.scripts == [] and data.actions == [] and data.schedules == []


def test_id_filters_restrict_lists():
    async def _run():
        handlers = _full_handlers()
        handlers["Script.List"] = {"scripts": [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]}
        handlers["Actions.List"] = {"actions": [{"id": "x"}, {"id": "y"}]}
        handlers["Schedule.List"] = {"jobs": [{"id": 5}, {"id": 6}]}
        config = AggregationConfig.from_dict({
            "thermostats": [], "script_ids": [2], "action_ids": ["x"], "schedule_ids": ["6"],
        })
        handlers["Thermostat.List"] = {"thermostats": []}
        return await DeviceAggregator(FakeClient(handlers)).fetch_aggregated_status(config)

    data = asyncio.run(_run())
    assert [s.id for s in data.scripts] == [2]
    assert [a.id for a in data.actions] == ["x"]
    assert [(s.id, s.name) for s in data.schedules] == [(6, "Schedule 6")]


def test_calls_run_concurrently():
    async def _run():
        client = FakeClient(_full_handlers(), delay=0.2)
        config = AggregationConfig(thermostats=tuple(ThermostatConfig(id=f"trv-{n}") for n in range(4)))
        started = time.monotonic()
        data = await DeviceAggregator(client).fetch_aggregated_status(config)
        return data, time.monotonic() - started

    data, elapsed = asyncio.run(_run())
    assert len(data.thermostats) == 4
    # 8 calls of 0.2s each; sequential would take 1.6s
    assert elapsed < 0.8


def test_snapshot_to_dict_is_structurally_complete():
    async def _run():
        handlers = {"Shelly.GetDeviceInfo": _auth_failure("Shelly.GetDeviceInfo")}
        return await DeviceAggregator(FakeClient(handlers)).fetch_aggregated_status(AggregationConfig())

    payload = asyncio.run(_run()).to_dict()
    assert set(payload) == {"controller", "thermostats", "scripts", "actions", "schedules",
                            "controllerUrl", "authError"}
    for key in ("thermostats", "scripts", "actions", "schedules"):
        assert payload[key] == []


def test_snapshot_to_dict_uses_camel_case_keys():
    async def _run():
        client = FakeClient(_full_handlers())
        config = AggregationConfig(thermostats=(ThermostatConfig(id="trv-1"),))
        return await DeviceAggregator(client).fetch_aggregated_status(config)

    payload = asyncio.run(_run()).to_dict()

    assert payload["controllerUrl"] == "http://192.168.2.163"
    assert payload["authError"] is None
    assert payload["controller"]["uptimeSeconds"] == 3600
    assert payload["scripts"][0]["lastRunTs"] == 1710000000
    assert payload["schedules"][0]["nextRunTs"] == 1710003600

    thermostat = payload["thermostats"][0]
    assert thermostat["targetTemperature"] == 22
    assert thermostat["valvePosition"] == 40
    assert thermostat["lastUpdateTs"] is None
    # Controller payloads keep their own key names
    assert thermostat["rawStatus"]["target_t"] == 22
    assert payload["scripts"][0]["raw"]["last_run"] == 1710000000


class RoutingSession(FakeSession):
    """Answers each post by the RPC method in its body, so concurrent calls need no ordering."""

    def __init__(self, routes):
        super().__init__()
        self.routes = routes

    def post(self, url, **kwargs):
        self.post_calls.append({"url": url, **kwargs})
        result = self.routes[json.loads(kwargs["data"])["method"]]
        if isinstance(result, Exception):
            raise result
        return result


def test_each_failure_logged_once(caplog):
    session = RoutingSession({
        "Shelly.GetDeviceInfo": MockResponse(200, {"id": 1, "result": DEVICE_INFO}),
        "BluTrv.GetStatus": asyncio.TimeoutError(),
        "Script.List": MockResponse(401, reason="Unauthorized"),
        "Actions.List": MockResponse(500, reason="Internal Server Error"),
        "Schedule.List": MockResponse(200, {"id": 1, "error": {"code": 404, "message": "No handler"}}),
    })
    secrets = StaticSecrets({"SHELLY_HOST": "192.168.2.163", "SHELLY_USERNAME": "admin", "SHELLY_PASSWORD": "pw"})
    client = ControllerClient(ConnectionResolver({}, secrets), AuthNegotiator(RpcTransport(session)))
    config = AggregationConfig(thermostats=(ThermostatConfig(id="trv-1"),))

    with caplog.at_level(logging.DEBUG):
        data = asyncio.run(DeviceAggregator(client).fetch_aggregated_status(config))

    assert data.auth_error == AUTH_ERROR_MESSAGE
    assert data.thermostats[0].status == "unavailable"

    def _messages(method):
        return [r for r in caplog.records if r.levelno >= logging.INFO and method in r.getMessage()]

    for method in ("BluTrv.GetStatus", "Script.List", "Actions.List", "Schedule.List"):
        assert len(_messages(method)) == 1, method

    assert _messages("BluTrv.GetStatus")[0].levelno == logging.ERROR
    assert "trv-1" in _messages("BluTrv.GetStatus")[0].getMessage()
    assert _messages("Actions.List")[0].levelno == logging.ERROR
    assert _messages("Schedule.List")[0].levelno == logging.INFO
    assert _messages("Script.List")[0].levelno == logging.WARNING
