"""
Tests for the chat WebSocket gateway.

ConnectionManager and ChatEndpoint lifecycle tests drive a fake socket
directly; protocol tests go through /ws/chat with the TestClient.
"""

import asyncio
import json

import pytest
from fastapi import WebSocketDisconnect
from starlette.websockets import WebSocketState

from conftest import TestingSessionLocal, bearer
from rest_api.models import Message, User
from shared.config.constants import Cookies, user_room
from shared.security.auth import sign_access_token
from ws_gateway.components.core import WebSocketContext, sanitize_log_data
from ws_gateway.components.core.constants import WSCloseCode
from ws_gateway.components.endpoints import ChatEndpoint
from ws_gateway.connection_manager import ConnectionManager, event_frame


class FakeWebSocket:
    """Minimal WebSocket double: scripted incoming frames, recorded outgoing ones."""

    def __init__(self, incoming: list[str] | None = None, headers: dict | None = None, hang: bool = False):
        self.incoming = list(incoming or [])
        self.headers = headers or {}
        self.cookies: dict[str, str] = {}
        self.sent: list[dict] = []
        self.closed_with: tuple[int, str] | None = None
        self.hang = hang
        self.client_state = WebSocketState.CONNECTING
        self.application_state = WebSocketState.CONNECTING

    async def accept(self):
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED

    async def close(self, code: int = 1000, reason: str = ""):
        self.closed_with = (code, reason)
        self.client_state = WebSocketState.DISCONNECTED
        self.application_state = WebSocketState.DISCONNECTED

    async def send_json(self, payload):
        self.sent.append(payload)

    async def receive_text(self) -> str:
        if self.incoming:
            return self.incoming.pop(0)
        if self.hang:
            await asyncio.sleep(3600)
        raise WebSocketDisconnect(code=1000)

    def events(self, name: str) -> list:
        return [frame["data"] for frame in self.sent if frame["event"] == name]


def _context(user: User) -> WebSocketContext:
    return WebSocketContext(user_id=user.id, name=user.name, role=user.role, endpoint="/ws/chat")


def receive_event(ws, name: str, limit: int = 10) -> dict:
    """Read frames until one named `name` arrives; other events are skipped."""
    for _ in range(limit):
        frame = ws.receive_json()
        if frame["event"] == name:
            return frame["data"]
    raise AssertionError(f"no {name!r} frame within {limit} frames")


def sync(ws) -> list[dict]:
    """
    Round-trip a ping so every earlier frame from this socket has been handled.

    Returns the frames that arrived before the pong.
    """
    ws.send_json({"event": "ping", "data": "sync"})
    frames = []
    for _ in range(10):
        frame = ws.receive_json()
        if frame == {"event": "pong", "data": "sync"}:
            return frames
        frames.append(frame)
    raise AssertionError("no pong within 10 frames")


# =============================================================================
# ConnectionManager
# =============================================================================


class TestConnectionManager:

    @pytest.mark.asyncio
    async def test_connect_joins_personal_room(self, seed_user):
        manager = ConnectionManager()
        ws = FakeWebSocket()
        await manager.connect(ws, _context(seed_user))

        assert ws.client_state == WebSocketState.CONNECTED
        assert manager.is_user_connected(seed_user.id)
        assert manager.rooms_of(ws) == {user_room(seed_user.id)}
        assert manager.get_stats() == {
            "total_connections": 1,
            "users_connected": 1,
            "rooms_with_connections": 1,
        }

    @pytest.mark.asyncio
    async def test_connection_limit_per_user(self, seed_user):
        manager = ConnectionManager(max_connections_per_user=2)
        context = _context(seed_user)
        await manager.connect(FakeWebSocket(), context)
        await manager.connect(FakeWebSocket(), context)

        third = FakeWebSocket()
        with pytest.raises(ConnectionError):
            await manager.connect(third, context)
        assert third.closed_with[0] == WSCloseCode.POLICY_VIOLATION
        assert manager.total_connections == 2

    @pytest.mark.asyncio
    async def test_send_to_room_with_exclude(self, seed_user, seed_support):
        manager = ConnectionManager()
        a, b, outsider = FakeWebSocket(), FakeWebSocket(), FakeWebSocket()
        await manager.connect(a, _context(seed_user))
        await manager.connect(b, _context(seed_support))
        await manager.connect(outsider, _context(seed_support))
        await manager.join(a, "room-x")
        await manager.join(b, "room-x")

        sent = await manager.send_to_room("room-x", event_frame("userTyping", {}), exclude=a)
        assert sent == 1
        assert b.events("userTyping") == [{}]
        assert a.sent == []
        assert outsider.sent == []

    @pytest.mark.asyncio
    async def test_leave_and_disconnect_clean_indexes(self, seed_user):
        manager = ConnectionManager()
        ws = FakeWebSocket()
        await manager.connect(ws, _context(seed_user))
        await manager.join(ws, "room-x")
        await manager.leave(ws, "room-x")
        assert manager.rooms_of(ws) == {user_room(seed_user.id)}

        context = await manager.disconnect(ws)
        assert context.user_id == seed_user.id
        assert not manager.is_user_connected(seed_user.id)
        assert manager.by_room == {}
        assert await manager.disconnect(ws) is None

    @pytest.mark.asyncio
    async def test_send_skips_closed_sockets(self, seed_user):
        manager = ConnectionManager()
        ws = FakeWebSocket()
        await manager.connect(ws, _context(seed_user))
        await ws.close()
        assert await manager.send(ws, event_frame("pong", None)) is False

    @pytest.mark.asyncio
    async def test_shutdown(self, seed_user):
        manager = ConnectionManager()
        ws = FakeWebSocket()
        await manager.connect(ws, _context(seed_user))

        assert await manager.shutdown() == 1
        assert ws.closed_with[0] == WSCloseCode.GOING_AWAY
        assert manager.total_connections == 0
        assert manager.is_shutting_down()
        with pytest.raises(ConnectionError):
            await manager.connect(FakeWebSocket(), _context(seed_user))


# =============================================================================
# ChatEndpoint lifecycle
# =============================================================================


class TestChatEndpointLifecycle:

    @pytest.mark.asyncio
    async def test_presence_follows_last_connection(self, db_session, seed_user, seed_support):
        manager = ConnectionManager()
        watcher = FakeWebSocket()
        await manager.connect(watcher, _context(seed_support))

        first = ChatEndpoint(FakeWebSocket(), manager, TestingSessionLocal)
        second = ChatEndpoint(FakeWebSocket(), manager, TestingSessionLocal)
        await first.register_connection(_context(seed_user))
        await second.register_connection(_context(seed_user))

        db_session.expire_all()
        assert db_session.get(User, seed_user.id).is_online is True
        assert watcher.events("userOnline")[0] == {"userId": seed_user.id, "name": seed_user.name}

        # Another tab is still open: the user stays online
        await first.unregister_connection(_context(seed_user))
        db_session.expire_all()
        assert db_session.get(User, seed_user.id).is_online is True
        assert watcher.events("userOffline") == []

        await second.unregister_connection(_context(seed_user))
        db_session.expire_all()
        assert db_session.get(User, seed_user.id).is_online is False
        assert watcher.events("userOffline") == [{"userId": seed_user.id}]

    @pytest.mark.asyncio
    async def test_run_handles_frames_until_disconnect(self, seed_user):
        manager = ConnectionManager()
        ws = FakeWebSocket(
            incoming=[json.dumps({"event": "ping", "data": 1})],
            headers={"authorization": f"Bearer {sign_access_token(seed_user.id)}"},
        )
        await ChatEndpoint(ws, manager, TestingSessionLocal).run()

        assert ws.events("pong") == [1]
        assert manager.total_connections == 0

    @pytest.mark.asyncio
    async def test_run_accepts_cookie_token(self, seed_user):
        ws = FakeWebSocket(incoming=[json.dumps({"event": "ping"})])
        ws.cookies[Cookies.ACCESS_TOKEN] = sign_access_token(seed_user.id)
        await ChatEndpoint(ws, ConnectionManager(), TestingSessionLocal).run()
        assert ws.events("pong") == [None]

    @pytest.mark.asyncio
    async def test_oversized_frame_closes_connection(self, seed_user):
        ws = FakeWebSocket(incoming=["x" * 100, json.dumps({"event": "ping"})])
        endpoint = ChatEndpoint(
            ws, ConnectionManager(), TestingSessionLocal,
            token=sign_access_token(seed_user.id), max_message_size=50,
        )
        await endpoint.run()

        assert ws.closed_with[0] == WSCloseCode.MESSAGE_TOO_BIG
        assert ws.events("pong") == []

    @pytest.mark.asyncio
    async def test_idle_connection_times_out(self, seed_user):
        ws = FakeWebSocket(hang=True)
        endpoint = ChatEndpoint(
            ws, ConnectionManager(), TestingSessionLocal,
            token=sign_access_token(seed_user.id), receive_timeout=0.05,
        )
        await endpoint.run()
        assert ws.closed_with == (WSCloseCode.NORMAL, "Connection timeout")

    @pytest.mark.asyncio
    async def test_disallowed_origin_rejected(self, seed_user):
        ws = FakeWebSocket(headers={"origin": "https://evil.example"})
        endpoint = ChatEndpoint(
            ws, ConnectionManager(), TestingSessionLocal,
            token=sign_access_token(seed_user.id), allowed_origins=["http://localhost:5173"],
        )
        await endpoint.run()
        assert ws.closed_with[0] == WSCloseCode.FORBIDDEN
        assert ws.client_state == WebSocketState.DISCONNECTED


# =============================================================================
# /ws/chat protocol
# =============================================================================


class TestChatProtocol:

    def test_rejects_missing_token(self, client):
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect("/ws/chat"):
                pass
        assert exc.value.code == WSCloseCode.AUTH_FAILED

    def test_rejects_invalid_token(self, client):
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect("/ws/chat?token=garbage"):
                pass
        assert exc.value.code == WSCloseCode.AUTH_FAILED

    def test_connect_with_bearer_header(self, client, seed_user):
        with client.websocket_connect("/ws/chat", headers=bearer(seed_user)) as ws:
            online = receive_event(ws, "userOnline")
            assert online == {"userId": seed_user.id, "name": seed_user.name}

    def test_invalid_frames(self, client, seed_user):
        with client.websocket_connect(f"/ws/chat?token={sign_access_token(seed_user.id)}") as ws:
            ws.send_text("not json")
            assert receive_event(ws, "error") == {"message": "Invalid message format"}

            ws.send_json({"event": "dance"})
            assert receive_event(ws, "error") == {"message": "Unknown event: dance"}

            ws.send_json({"event": "joinRoom", "data": "bad room!"})
            assert receive_event(ws, "error") == {"message": "Invalid room ID"}

    def test_send_message_reaches_room(self, client, db_session, seed_user, seed_support):
        room = user_room(seed_user.id)
        with client.websocket_connect(f"/ws/chat?token={sign_access_token(seed_user.id)}") as user_ws, \
                client.websocket_connect(f"/ws/chat?token={sign_access_token(seed_support.id)}") as support_ws:
            support_ws.send_json({"event": "joinRoom", "data": room})
            sync(support_ws)

            user_ws.send_json({
                "event": "sendMessage",
                "data": {"roomId": room, "content": "  I need help  ", "receiverId": seed_support.id},
            })

            for ws in (user_ws, support_ws):
                message = receive_event(ws, "receiveMessage")
                assert message["content"] == "I need help"
                assert message["chatRoom"] == room
                assert message["sender"]["_id"] == seed_user.id
                assert message["receiver"]["_id"] == seed_support.id
                assert message["read"] is False

        db_session.expire_all()
        stored = db_session.query(Message).one()
        assert stored.chat_room == room
        assert stored.sender_id == seed_user.id

    def test_send_message_validation(self, client, seed_user):
        with client.websocket_connect(f"/ws/chat?token={sign_access_token(seed_user.id)}") as ws:
            ws.send_json({"event": "sendMessage", "data": {"roomId": "room-a", "content": "   "}})
            assert receive_event(ws, "error") == {"message": "Message content is required"}

            ws.send_json({"event": "sendMessage", "data": {"roomId": "room-a", "content": "hi", "receiverId": "x"}})
            assert receive_event(ws, "error") == {"message": "Invalid receiver ID"}

            ws.send_json({"event": "sendMessage", "data": {"roomId": "room-a", "content": "hi", "receiverId": 999}})
            assert receive_event(ws, "error") == {"message": "Receiver not found"}

    def test_typing_excludes_sender(self, client, seed_user, seed_support):
        room = user_room(seed_user.id)
        with client.websocket_connect(f"/ws/chat?token={sign_access_token(seed_user.id)}") as user_ws, \
                client.websocket_connect(f"/ws/chat?token={sign_access_token(seed_support.id)}") as support_ws:
            support_ws.send_json({"event": "joinRoom", "data": {"roomId": room}})
            support_ws.send_json({"event": "typing", "data": {"roomId": room, "isTyping": True}})
            echoed = sync(support_ws)

            typing = receive_event(user_ws, "userTyping")
            assert typing == {"userId": seed_support.id, "name": seed_support.name, "isTyping": True}
            assert all(frame["event"] != "userTyping" for frame in echoed)

    def test_mark_read(self, client, db_session, seed_user, seed_support):
        room = user_room(seed_user.id)
        with client.websocket_connect(f"/ws/chat?token={sign_access_token(seed_support.id)}") as support_ws:
            support_ws.send_json({"event": "joinRoom", "data": room})
            support_ws.send_json({"event": "sendMessage", "data": {"roomId": room, "content": "Hello!"}})
            receive_event(support_ws, "receiveMessage")

            with client.websocket_connect(f"/ws/chat?token={sign_access_token(seed_user.id)}") as user_ws:
                user_ws.send_json({"event": "markRead", "data": room})
                assert receive_event(user_ws, "messagesRead") == {"roomId": room, "readBy": seed_user.id}
                assert receive_event(support_ws, "messagesRead") == {"roomId": room, "readBy": seed_user.id}

        db_session.expire_all()
        assert db_session.query(Message).one().read is True

    def test_leave_room_stops_delivery(self, client, seed_user, seed_support):
        with client.websocket_connect(f"/ws/chat?token={sign_access_token(seed_user.id)}") as user_ws, \
                client.websocket_connect(f"/ws/chat?token={sign_access_token(seed_support.id)}") as support_ws:
            support_ws.send_json({"event": "joinRoom", "data": "room-a"})
            support_ws.send_json({"event": "leaveRoom", "data": "room-a"})
            sync(support_ws)

            user_ws.send_json({"event": "joinRoom", "data": "room-a"})
            user_ws.send_json({"event": "sendMessage", "data": {"roomId": "room-a", "content": "anyone?"}})
            assert receive_event(user_ws, "receiveMessage")["content"] == "anyone?"

            assert all(frame["event"] != "receiveMessage" for frame in sync(support_ws))


class TestLogSanitizing:

    def test_strips_control_characters_and_truncates(self):
        assert sanitize_log_data("a\nb\x00c") == "abc"
        assert sanitize_log_data("x" * 200, max_length=10) == "x" * 10 + "..."
