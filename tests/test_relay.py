"""Integration tests: a live relay and a websocket editor agent."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import MagicMock

import httpx
import pytest
import websockets

from drawio_relay import Relay, RelayConfig
from drawio_relay.models import NO_PEER_ERROR, RelayError, TIMEOUT_ERROR
from test_helpers import running_relay, wait_until


async def _answer(agent, result_for) -> None:
    """Reply to every command with ``result_for(command)``."""
    async for raw in agent:
        command = json.loads(raw)
        await agent.send(
            json.dumps({"type": "result", "commandId": command["id"], "result": result_for(command)})
        )


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_reports_bound_port(self) -> None:
        async with running_relay() as (relay, port):
            assert port > 0
            assert relay.port == port
            assert relay.is_running

        assert not relay.is_running

    @pytest.mark.asyncio
    async def test_start_twice_raises(self) -> None:
        async with running_relay() as (relay, _):
            with pytest.raises(RelayError):
                await relay.start()

    @pytest.mark.asyncio
    async def test_stop_abandons_pending(self) -> None:
        async with running_relay() as (relay, _):
            relay.ledger.add("cmd-1", MagicMock(), MagicMock())
        assert relay.ledger.size == 0

    @pytest.mark.asyncio
    async def test_health_snapshot(self) -> None:
        async with running_relay() as (relay, _):
            assert relay.health() == {"status": "ok", "wsConnected": False, "pendingCommands": 0}

    @pytest.mark.asyncio
    async def test_stop_without_start(self) -> None:
        relay = Relay(RelayConfig(port=0))
        await relay.stop()  # Should not raise


class TestHealthEndpoint:
    @pytest.mark.asyncio
    async def test_reflects_connection(self) -> None:
        async with running_relay() as (relay, port):
            base_url = f"http://127.0.0.1:{port}"
            async with httpx.AsyncClient(base_url=base_url) as client:
                data = (await client.get("/health")).json()
                assert data == {"status": "ok", "wsConnected": False, "pendingCommands": 0}

                async with websockets.connect(f"ws://127.0.0.1:{port}"):
                    await wait_until(lambda: relay.peers.is_connected)
                    data = (await client.get("/health")).json()
                    assert data["wsConnected"] is True

                await wait_until(lambda: relay.peers.client is None)
                data = (await client.get("/health")).json()
                assert data["wsConnected"] is False


class TestStdout:
    @pytest.mark.asyncio
    async def test_requests_leave_stdout_clean(self, capsys) -> None:
        async with running_relay(log_level="INFO") as (_, port):
            async with httpx.AsyncClient(base_url=f"http://127.0.0.1:{port}") as client:
                assert (await client.get("/health")).status_code == 200
                assert (await client.get("/poll")).status_code == 200

        # MCP JSON-RPC owns stdout in serve mode
        assert capsys.readouterr().out == ""


class TestCommands:
    @pytest.mark.asyncio
    async def test_round_trip(self) -> None:
        async with running_relay(command_timeout=2) as (relay, port):
            async with websockets.connect(f"ws://127.0.0.1:{port}") as agent:
                await wait_until(lambda: relay.peers.is_connected)
                responder = asyncio.create_task(
                    _answer(agent, lambda command: {"success": True, "result": 2})
                )

                result = await relay.send_command("execute_script", {"script": "return 1+1"})

                responder.cancel()

        assert result == {"success": True, "result": 2}
        assert relay.ledger.size == 0

    @pytest.mark.asyncio
    async def test_agent_sees_command_fields(self) -> None:
        seen = []

        def result_for(command):
            seen.append(command)
            return {"success": True, "data": "test response"}

        async with running_relay(command_timeout=2) as (relay, port):
            async with websockets.connect(f"ws://127.0.0.1:{port}") as agent:
                await wait_until(lambda: relay.peers.is_connected)
                responder = asyncio.create_task(_answer(agent, result_for))

                result = await relay.send_command("test_action", {"param": "value"})

                responder.cancel()

        assert result == {"success": True, "data": "test response"}
        assert seen[0]["action"] == "test_action"
        assert seen[0]["param"] == "value"
        assert isinstance(seen[0]["id"], str)

    @pytest.mark.asyncio
    async def test_no_agent(self) -> None:
        async with running_relay(command_timeout=0.1) as (relay, _):
            result = await relay.dispatcher.execute_script("return 1+1")

        assert result == {"success": False, "error": NO_PEER_ERROR}

    @pytest.mark.asyncio
    async def test_silent_agent_times_out(self) -> None:
        async with running_relay(command_timeout=0.1) as (relay, port):
            async with websockets.connect(f"ws://127.0.0.1:{port}") as agent:
                await wait_until(lambda: relay.peers.is_connected)

                task = asyncio.create_task(relay.send_command("execute_script", {"script": "1"}))
                await asyncio.sleep(0.15)

                assert task.done()
                assert task.result() == {"success": False, "error": TIMEOUT_ERROR}
                assert relay.ledger.size == 0

                # A late answer is dropped
                command = json.loads(await agent.recv())
                await agent.send(
                    json.dumps({"type": "result", "commandId": command["id"], "result": {}})
                )
                await asyncio.sleep(0.05)
                assert relay.ledger.size == 0

    @pytest.mark.asyncio
    async def test_malformed_messages_keep_connection(self) -> None:
        async with running_relay(command_timeout=2) as (relay, port):
            async with websockets.connect(f"ws://127.0.0.1:{port}") as agent:
                await wait_until(lambda: relay.peers.is_connected)
                await agent.send("not json at all")
                await agent.send(json.dumps({"type": "hello"}))

                responder = asyncio.create_task(
                    _answer(agent, lambda command: {"success": True, "result": "still here"})
                )
                result = await relay.send_command("execute_script", {"script": "1"})
                responder.cancel()

        assert result["result"] == "still here"


class TestReconnection:
    @pytest.mark.asyncio
    async def test_new_agent_receives_commands(self) -> None:
        async with running_relay(command_timeout=2) as (relay, port):
            url = f"ws://127.0.0.1:{port}"

            async with websockets.connect(url):
                await wait_until(lambda: relay.peers.is_connected)
            await wait_until(lambda: relay.peers.client is None)

            async with websockets.connect(url) as agent:
                await wait_until(lambda: relay.peers.is_connected)
                responder = asyncio.create_task(
                    _answer(agent, lambda command: {"success": True, "result": "new"})
                )
                result = await relay.send_command("execute_script", {"script": "1"})
                responder.cancel()

        assert result == {"success": True, "result": "new"}

    @pytest.mark.asyncio
    async def test_newest_agent_wins(self) -> None:
        async with running_relay(command_timeout=2) as (relay, port):
            url = f"ws://127.0.0.1:{port}"

            async with websockets.connect(url) as old_agent:
                await wait_until(lambda: relay.peers.client is not None)
                old_handle = relay.peers.client

                async with websockets.connect(url) as new_agent:
                    await wait_until(lambda: relay.peers.client is not old_handle)
                    responder = asyncio.create_task(
                        _answer(new_agent, lambda command: {"success": True, "result": "new"})
                    )
                    result = await relay.send_command("execute_script", {"script": "1"})
                    responder.cancel()

                    # The old agent disconnecting leaves the new one in place
                    await old_agent.close()
                    await asyncio.sleep(0.05)
                    assert relay.peers.is_connected

        assert result["result"] == "new"


class TestHooks:
    @pytest.mark.asyncio
    async def test_connect_and_disconnect_hooks(self) -> None:
        on_connect, on_disconnect = MagicMock(), MagicMock()
        relay = Relay(
            RelayConfig(host="127.0.0.1", port=0, log_level="WARNING"),
            on_connect=on_connect,
            on_disconnect=on_disconnect,
        )
        port = await relay.start()
        try:
            async with websockets.connect(f"ws://127.0.0.1:{port}"):
                await wait_until(lambda: on_connect.called)
            await wait_until(lambda: on_disconnect.called)
        finally:
            await relay.stop()

        on_connect.assert_called_once()
        on_disconnect.assert_called_once()

    @pytest.mark.asyncio
    async def test_failing_connect_hook_releases_peer(self) -> None:
        on_connect = MagicMock(side_effect=RuntimeError("hook failed"))
        on_error, on_disconnect = MagicMock(), MagicMock()
        relay = Relay(
            RelayConfig(host="127.0.0.1", port=0, log_level="WARNING"),
            on_connect=on_connect,
            on_disconnect=on_disconnect,
            on_error=on_error,
        )
        port = await relay.start()
        try:
            async with websockets.connect(f"ws://127.0.0.1:{port}"):
                await wait_until(lambda: on_disconnect.called)
            result = await relay.send_command("execute_script", {"script": "1"})
        finally:
            await relay.stop()

        assert relay.peers.client is None
        assert result == {"success": False, "error": NO_PEER_ERROR}
        on_error.assert_called_once()
        assert isinstance(on_error.call_args[0][0], RuntimeError)
