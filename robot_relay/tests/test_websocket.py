import json

import pytest
from tornado import httpclient, httpserver, testing, websocket

from robot_relay.config import RelaySettings
from robot_relay.models import Role

BROWSER_UA = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36"


def start_server(mode: str = "single"):
    import robot_relay.main as main

    app = main.make_app(RelaySettings(mode=mode))
    server = httpserver.HTTPServer(app)
    sock, port = testing.bind_unused_port()
    server.add_socket(sock)
    return app, server, port


async def connect(port: int, path: str = "/", user_agent: str | None = None):
    headers = {"User-Agent": user_agent} if user_agent else {}
    return await websocket.websocket_connect(
        httpclient.HTTPRequest(f"ws://127.0.0.1:{port}{path}", headers=headers)
    )


async def read_json(ws):
    raw = await ws.read_message()
    assert raw is not None, "connection closed unexpectedly"
    return json.loads(raw)


def close_all(*connections):
    for conn in connections:
        try:
            conn.close()
        except Exception:
            pass


@pytest.mark.asyncio
async def test_robot_telemetry_reaches_browser():
    _, server, port = start_server()
    web_ws = robot_ws = None
    try:
        web_ws = await connect(port, user_agent=BROWSER_UA)
        welcome = await read_json(web_ws)
        assert welcome["type"] == "welcome"
        assert welcome["robotConnected"] is False

        robot_ws = await connect(port)
        robot_welcome = await read_json(robot_ws)
        assert robot_welcome["type"] == "welcome"
        robot_id = robot_welcome["robotId"]
        assert robot_id.startswith("robot_")

        connected = await read_json(web_ws)
        assert connected["type"] == "robot_connected"
        assert connected["robotId"] == robot_id

        await robot_ws.write_message(json.dumps({"type": "location", "data": {"lat": 1, "lng": 2}}))
        await robot_ws.write_message(json.dumps({"type": "status", "data": {"battery": 85}}))

        location = await read_json(web_ws)
        assert location["type"] == "robot_location"
        assert location["robotId"] == robot_id
        assert location["data"] == {"lat": 1, "lng": 2}
        status = await read_json(web_ws)
        assert status["type"] == "robot_status"
        assert status["data"] == {"battery": 85}
    finally:
        close_all(*(ws for ws in (web_ws, robot_ws) if ws is not None))
        server.stop()


@pytest.mark.asyncio
async def test_command_round_trip_and_no_robot_error():
    _, server, port = start_server()
    web_ws = robot_ws = None
    try:
        web_ws = await connect(port, path="/web")
        await read_json(web_ws)

        await web_ws.write_message(json.dumps({"type": "command", "command": "forward"}))
        error = await read_json(web_ws)
        assert error == {"type": "error", "message": "No robot connected", "timestamp": error["timestamp"]}

        # Nothing else was queued behind the error.
        await web_ws.write_message(json.dumps({"type": "ping"}))
        assert (await read_json(web_ws))["type"] == "pong"

        robot_ws = await connect(port, path="/robot")
        await read_json(robot_ws)
        assert (await read_json(web_ws))["type"] == "robot_connected"

        await web_ws.write_message(
            json.dumps({"type": "command", "command": "forward", "source": "web_interface"})
        )
        command = await read_json(robot_ws)
        assert command["type"] == "command_received"
        assert command["command"] == "forward"
        assert command["source"] == "web_interface"
    finally:
        close_all(*(ws for ws in (web_ws, robot_ws) if ws is not None))
        server.stop()


@pytest.mark.asyncio
async def test_second_robot_evicts_first():
    app, server, port = start_server()
    first = second = None
    try:
        first = await connect(port, path="/robot")
        await read_json(first)
        second = await connect(port, path="/robot")
        second_id = (await read_json(second))["robotId"]

        assert await first.read_message() is None
        assert first.close_code == 4000

        registry = app.settings["registry"]
        assert registry.list_ids(Role.ROBOT) == [second_id]
    finally:
        close_all(*(ws for ws in (first, second) if ws is not None))
        server.stop()


@pytest.mark.asyncio
async def test_late_browser_gets_catch_up_and_disconnect_notice():
    _, server, port = start_server()
    web_ws = robot_ws = None
    try:
        robot_ws = await connect(port)
        robot_id = (await read_json(robot_ws))["robotId"]

        web_ws = await connect(port, user_agent=BROWSER_UA)
        welcome = await read_json(web_ws)
        assert welcome["robotConnected"] is True
        catch_up = await read_json(web_ws)
        assert catch_up["type"] == "robot_connected"
        assert catch_up["robotId"] == robot_id

        robot_ws.close()
        robot_ws = None
        gone = await read_json(web_ws)
        assert gone["type"] == "robot_disconnected"
        assert gone["robotId"] == robot_id
    finally:
        close_all(*(ws for ws in (web_ws, robot_ws) if ws is not None))
        server.stop()


@pytest.mark.asyncio
async def test_malformed_frame_keeps_connection_open():
    _, server, port = start_server()
    robot_ws = None
    try:
        robot_ws = await connect(port)
        await read_json(robot_ws)

        await robot_ws.write_message("definitely not json")
        await robot_ws.write_message(json.dumps({"type": {"a": 1}}))
        await robot_ws.write_message(json.dumps({"type": ["location"]}))
        await robot_ws.write_message("[" * 100000)
        await robot_ws.write_message(json.dumps({"type": "ping"}))

        pong = await read_json(robot_ws)
        assert pong["type"] == "pong"
    finally:
        if robot_ws is not None:
            close_all(robot_ws)
        server.stop()


@pytest.mark.asyncio
async def test_multi_robot_telemetry_skips_other_robots():
    _, server, port = start_server(mode="multi")
    web_ws = first = second = None
    try:
        web_ws = await connect(port, path="/web")
        assert (await read_json(web_ws))["type"] == "welcome"
        assert (await read_json(web_ws))["robots"] == []

        first = await connect(port, path="/robot")
        first_id = (await read_json(first))["robotId"]
        assert (await read_json(web_ws))["type"] == "robot_connected"
        assert (await read_json(web_ws))["robots"] == [first_id]

        second = await connect(port, path="/robot")
        second_id = (await read_json(second))["robotId"]
        assert (await read_json(web_ws))["robotId"] == second_id
        assert (await read_json(web_ws))["robots"] == [first_id, second_id]

        await first.write_message(json.dumps({"type": "location", "data": {"lat": 1, "lng": 2}}))
        location = await read_json(web_ws)
        assert location["robotId"] == first_id

        await second.write_message(json.dumps({"type": "ping"}))
        assert (await read_json(second))["type"] == "pong"

        await web_ws.write_message(json.dumps({"type": "command", "command": "stop", "robotId": second_id}))
        assert (await read_json(second))["command"] == "stop"
    finally:
        close_all(*(ws for ws in (web_ws, first, second) if ws is not None))
        server.stop()


@pytest.mark.asyncio
async def test_heartbeat_terminates_silent_robot():
    app, server, port = start_server()
    web_ws = robot_ws = None
    try:
        web_ws = await connect(port, path="/web")
        await read_json(web_ws)
        robot_ws = await connect(port, path="/robot")
        robot_id = (await read_json(robot_ws))["robotId"]
        assert (await read_json(web_ws))["type"] == "robot_connected"

        registry = app.settings["registry"]
        robot = registry.lookup(Role.ROBOT)[0]
        # A pong arriving between ticks would keep the robot; simulate one that never came.
        robot.is_alive = False
        app.settings["heartbeat"].tick()

        gone = await read_json(web_ws)
        assert gone["type"] == "robot_disconnected"
        assert gone["robotId"] == robot_id
        assert await robot_ws.read_message() is None

        client = httpclient.AsyncHTTPClient()
        resp = await client.fetch(f"http://127.0.0.1:{port}/robots")
        assert json.loads(resp.body)["robots"] == []
        assert registry.lookup(Role.ROBOT) == []
    finally:
        close_all(*(ws for ws in (web_ws, robot_ws) if ws is not None))
        server.stop()
