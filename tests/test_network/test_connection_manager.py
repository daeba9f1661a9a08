"""
Tests for connection tracking, message routing and the websocket server.

Run with: python -m pytest tests/test_network -v
"""

import asyncio
import json
import os
import tempfile
import unittest
from unittest.mock import AsyncMock

from websockets.asyncio.client import connect

from monopoly_shared.enums import EventType
from monopoly_shared.protocol import EventMessage, RollDiceAction
from monopoly_server.network import ConnectionManager, MessageHandler, MonopolyServer


class MockWebSocket:
    """Mock WebSocket for testing without real connections."""

    def __init__(self, id: str):
        self.id = id
        self.sent_messages = []
        self.closed = False

    async def send(self, data: str) -> None:
        if self.closed:
            raise ConnectionError("Connection closed")
        self.sent_messages.append(data)

    def __hash__(self):
        return hash(self.id)

    def __eq__(self, other):
        return isinstance(other, MockWebSocket) and self.id == other.id

    def get_messages(self) -> list[dict]:
        return [json.loads(m) for m in self.sent_messages]


class TestConnectionManager(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.manager = ConnectionManager()
        self.alice_ws = MockWebSocket("ws-alice")
        self.bob_ws = MockWebSocket("ws-bob")
        await self.manager.connect(self.alice_ws, "p1", "Alice")
        await self.manager.connect(self.bob_ws, "p2", "Bob")

    async def test_connect(self):
        self.assertTrue(self.manager.is_player_connected("p1"))
        self.assertEqual(self.manager.get_player_id(self.alice_ws), "p1")
        self.assertEqual(self.manager.get_connection(self.bob_ws).player_name, "Bob")

    async def test_emit_to_player(self):
        await self.manager.emit_to_player("p1", EventType.ERROR, {"message": "x", "code": "y"})

        self.assertEqual(self.alice_ws.get_messages()[0]["type"], "error")
        self.assertEqual(self.bob_ws.sent_messages, [])

    async def test_emit_to_room_reaches_members_only(self):
        carol_ws = MockWebSocket("ws-carol")
        await self.manager.connect(carol_ws, "p3", "Carol")
        await self.manager.subscribe("p1", "room")
        await self.manager.subscribe("p2", "room")

        await self.manager.emit_to_room("room", EventType.ROOM_UPDATED, {"version": 1})

        self.assertEqual(self.alice_ws.get_messages()[0]["data"], {"version": 1})
        self.assertEqual(len(self.bob_ws.sent_messages), 1)
        self.assertEqual(carol_ws.sent_messages, [])

    async def test_membership_survives_disconnect(self):
        await self.manager.subscribe("p2", "room")
        await self.manager.disconnect(self.bob_ws)

        self.assertFalse(self.manager.is_player_connected("p2"))
        self.assertEqual(self.manager.get_rooms("p2"), ["room"])

        new_ws = MockWebSocket("ws-bob-2")
        await self.manager.connect(new_ws, "p2", "Bob")
        sent = await self.manager.broadcast_to_room(
            "room", EventMessage.create(EventType.ROOM_UPDATED, {})
        )
        self.assertEqual(sent, 1)
        self.assertEqual(len(new_ws.sent_messages), 1)

    async def test_reconnect_replaces_old_socket(self):
        new_ws = MockWebSocket("ws-alice-2")
        await self.manager.connect(new_ws, "p1", "Alice")

        self.assertIsNone(self.manager.get_connection(self.alice_ws))
        await self.manager.emit_to_player("p1", EventType.ROOM_UPDATED, {})
        self.assertEqual(self.alice_ws.sent_messages, [])
        self.assertEqual(len(new_ws.sent_messages), 1)

        # A late disconnect of the old socket must not drop the new one
        await self.manager.disconnect(self.alice_ws)
        self.assertTrue(self.manager.is_player_connected("p1"))

    async def test_send_failure_is_reported(self):
        self.alice_ws.closed = True
        with self.assertLogs("monopoly_server.network.connection_manager", level="ERROR"):
            sent = await self.manager.send_to_player(
                "p1", EventMessage.create(EventType.ROOM_UPDATED, {})
            )
        self.assertFalse(sent)


class TestMessageHandler(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.manager = ConnectionManager()
        self.ws = MockWebSocket("ws-alice")
        await self.manager.connect(self.ws, "p1", "Alice")
        self.coordinator = AsyncMock()
        self.handler = MessageHandler(self.coordinator, self.manager)

    async def test_dispatches_parsed_action(self):
        action = await self.handler.handle_message(
            "p1", json.dumps({"type": "roll-dice", "data": {"roomId": "r1"}})
        )

        self.assertIsInstance(action, RollDiceAction)
        self.coordinator.handle.assert_awaited_once_with(action)
        self.assertEqual(self.ws.sent_messages, [])

    async def test_malformed_frame_gets_error(self):
        result = await self.handler.handle_message("p1", "{oops")

        self.assertIsNone(result)
        self.coordinator.handle.assert_not_awaited()
        error = self.ws.get_messages()[0]
        self.assertEqual(error["type"], "error")
        self.assertEqual(error["data"]["code"], "PARSE_ERROR")

    async def test_undecodable_binary_frame_gets_error(self):
        result = await self.handler.handle_message(
            "p1", b'{"type": "roll-dice", "data": {"roomId": "\xff"}}'
        )

        self.assertIsNone(result)
        self.coordinator.handle.assert_not_awaited()
        self.assertEqual(self.ws.get_messages()[0]["data"]["code"], "PARSE_ERROR")

    async def test_second_connect_is_rejected(self):
        await self.handler.handle_message(
            "p1", json.dumps({"type": "connect", "data": {"playerId": "p1"}})
        )
        self.assertEqual(self.ws.get_messages()[0]["data"]["code"], "ALREADY_CONNECTED")
        self.coordinator.handle.assert_not_awaited()


class TestServerIntegration(unittest.IsolatedAsyncioTestCase):
    """Real websocket clients against a running server."""

    PORT = 18767

    async def asyncSetUp(self):
        handle, self.db_path = tempfile.mkstemp(suffix=".db")
        os.close(handle)
        self.server = MonopolyServer(host="127.0.0.1", port=self.PORT, db_path=self.db_path)
        self.server_task = asyncio.create_task(self.server.start())
        await asyncio.sleep(0.3)

    async def asyncTearDown(self):
        await self.server.stop()
        await self.server_task
        for suffix in ("", "-wal", "-shm"):
            if os.path.exists(self.db_path + suffix):
                os.remove(self.db_path + suffix)

    async def open_client(self, player_id, player_name):
        ws = await connect(f"ws://127.0.0.1:{self.PORT}")
        await ws.send(json.dumps({
            "type": "connect", "data": {"playerId": player_id, "playerName": player_name}
        }))
        return ws

    async def next_event(self, ws, event_type, timeout=2.0):
        while True:
            message = json.loads(await asyncio.wait_for(ws.recv(), timeout))
            if message["type"] == event_type:
                return message["data"]

    async def test_connect_requires_connect_frame(self):
        async with connect(f"ws://127.0.0.1:{self.PORT}") as ws:
            await ws.send(json.dumps({"type": "roll-dice", "data": {"roomId": "r1"}}))
            reply = json.loads(await ws.recv())
        self.assertEqual(reply["type"], "error")
        self.assertEqual(reply["data"]["code"], "CONNECT_REQUIRED")

    async def test_create_and_join_room(self):
        alice = await self.open_client("p1", "Alice")
        bob = await self.open_client("p2", "Bob")
        try:
            connected = await self.next_event(alice, "connected")
            self.assertEqual(connected["playerId"], "p1")
            self.assertEqual(connected["rooms"], [])
            await self.next_event(bob, "connected")

            await alice.send(json.dumps({"type": "create-room", "data": {
                "name": "Integration", "playerName": "Alice", "color": "red",
            }}))
            created = await self.next_event(alice, "room-created")
            room_id = created["roomId"]

            await bob.send(json.dumps({"type": "register-player", "data": {
                "roomId": room_id, "playerName": "Bob", "color": "blue",
            }}))
            update = await self.next_event(bob, "room-updated")
            self.assertEqual(
                sorted(p["name"] for p in update["gameRoom"]["players"]), ["Alice", "Bob"]
            )

            await bob.send(json.dumps({"type": "start-game", "data": {"roomId": room_id}}))
            error = await self.next_event(bob, "error")
            self.assertEqual(error["code"], "NOT_HOST")
        finally:
            await alice.close()
            await bob.close()


if __name__ == "__main__":
    unittest.main()
