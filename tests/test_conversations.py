"""
Tests for owner <-> shop messaging and the realtime hub

- GET /conversations, GET /conversations/shop/{shop_id}, GET /conversations/{id}
- POST /conversations/{id}/messages, PUT /conversations/{id}/read
- /ws socket authentication, presence and room membership
- ConnectionHub fan-out with in-process sockets
"""

import asyncio

import pytest
from starlette.websockets import WebSocketDisconnect

from garagehub.models import Notification, User
from garagehub.realtime import ConnectionHub, conversation_room, user_room
from garagehub.security_utils import create_access_token

from .conftest import auth_headers


def open_conversation(client, owner, shop):
    response = client.get(f"/conversations/shop/{shop.id}", headers=auth_headers(owner))
    assert response.status_code == 200
    return response.json()


def send(client, user, conversation_id, text):
    return client.post(
        f"/conversations/{conversation_id}/messages", json={"text": text}, headers=auth_headers(user)
    )


class TestConversations:
    def test_get_or_create_is_idempotent(self, client, owner, shop):
        first = open_conversation(client, owner, shop)
        second = open_conversation(client, owner, shop)

        assert first["id"] == second["id"]
        assert first["shop_name"] == "Precision Auto"
        assert first["user_name"] == owner.name

    def test_unknown_shop(self, client, owner):
        assert client.get("/conversations/shop/9999", headers=auth_headers(owner)).status_code == 404

    def test_only_owners_start_threads(self, client, shop, other_shop):
        response = client.get(f"/conversations/shop/{other_shop.id}", headers=auth_headers(shop.user))
        assert response.status_code == 403

    def test_message_notifies_other_party(self, client, db, owner, shop):
        conversation = open_conversation(client, owner, shop)

        response = send(client, owner, conversation["id"], "Can you look at my brakes Friday?")

        assert response.status_code == 201
        assert response.json()["sender_id"] == owner.id
        titles = [n.title for n in db.query(Notification).filter(Notification.user_id == shop.user_id).all()]
        assert titles == ["New Message"]

    def test_shop_reply_notifies_owner(self, client, db, owner, shop):
        conversation = open_conversation(client, owner, shop)

        send(client, shop.user, conversation["id"], "Friday at 9 works.")

        notified = db.query(Notification).filter(Notification.user_id == owner.id).count()
        assert notified == 1

    def test_listing_and_unread_counts(self, client, owner, shop):
        conversation = open_conversation(client, owner, shop)
        send(client, owner, conversation["id"], "Hello")
        send(client, owner, conversation["id"], "Are you open Saturday?")

        shop_view = client.get("/conversations", headers=auth_headers(shop.user)).json()
        owner_view = client.get("/conversations", headers=auth_headers(owner)).json()

        assert [c["id"] for c in shop_view] == [conversation["id"]]
        assert shop_view[0]["unread_count"] == 2
        assert shop_view[0]["last_message"]["text"] == "Are you open Saturday?"
        assert owner_view[0]["unread_count"] == 0

    def test_mark_read(self, client, owner, shop):
        conversation = open_conversation(client, owner, shop)
        send(client, owner, conversation["id"], "Hello")

        response = client.put(f"/conversations/{conversation['id']}/read", headers=auth_headers(shop.user))

        assert response.json() == {"success": True, "updated": 1}
        detail = client.get(f"/conversations/{conversation['id']}", headers=auth_headers(shop.user)).json()
        assert detail["unread_count"] == 0
        assert [m["is_read"] for m in detail["messages"]] == [True]

    def test_outsiders_are_forbidden(self, client, owner, other_owner, shop, other_shop):
        conversation = open_conversation(client, owner, shop)

        assert client.get(f"/conversations/{conversation['id']}", headers=auth_headers(other_owner)).status_code == 403
        assert send(client, other_shop.user, conversation["id"], "Hi").status_code == 403
        assert client.get("/conversations/9999", headers=auth_headers(owner)).status_code == 404

    def test_empty_message_rejected(self, client, owner, shop):
        conversation = open_conversation(client, owner, shop)
        assert send(client, owner, conversation["id"], "").status_code == 422

    def test_admin_has_no_inbox(self, client, admin):
        assert client.get("/conversations", headers=auth_headers(admin)).status_code == 403


class TestSocket:
    def test_bad_token_is_rejected(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws?token=bad") as websocket:
                websocket.receive_json()

    def test_presence_and_room_checks(self, client, db, owner, other_owner, shop):
        conversation = open_conversation(client, owner, shop)
        token = create_access_token(other_owner.id, other_owner.role)

        with client.websocket_connect(f"/ws?token={token}") as websocket:
            websocket.send_json({"event": "join_room", "data": {"conversation_id": conversation["id"]}})
            reply = websocket.receive_json()

            assert reply == {"event": "error", "data": {"message": "Conversation not found"}}
            db.expire_all()
            assert db.get(User, other_owner.id).is_online is True

    def test_participant_joins_room(self, client, owner, shop):
        conversation = open_conversation(client, owner, shop)
        token = create_access_token(owner.id, owner.role)

        with client.websocket_connect(f"/ws?token={token}") as websocket:
            websocket.send_json({"event": "join_room", "data": {"conversation_id": conversation["id"]}})
            websocket.send_json({"event": "join_room", "data": {"conversation_id": 9999}})

            assert websocket.receive_json()["event"] == "error"


class FakeSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    async def accept(self):
        pass

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)


class TestConnectionHub:
    def test_publish_without_loop_is_noop(self):
        hub = ConnectionHub()
        socket = FakeSocket()
        hub.join(socket, user_room(1))

        hub.publish(user_room(1), "new_notification", {"id": 1})

        assert socket.sent == []

    def test_publish_delivers_to_room(self):
        hub = ConnectionHub()
        member, outsider = FakeSocket(), FakeSocket()

        async def scenario():
            await hub.connect(member, 1)
            await hub.connect(outsider, 2)
            hub.join(member, conversation_room(7))
            hub.publish(conversation_room(7), "receive_message", {"text": "hi"})
            await asyncio.sleep(0.01)

        asyncio.run(scenario())

        assert member.sent == [{"event": "receive_message", "data": {"text": "hi"}}]
        assert outsider.sent == []

    def test_failed_send_drops_socket(self):
        hub = ConnectionHub()
        broken, healthy = FakeSocket(fail=True), FakeSocket()

        async def scenario():
            await hub.connect(broken, 1)
            await hub.connect(healthy, 1)
            await hub.send_room(user_room(1), "ping", {})

        asyncio.run(scenario())

        assert broken not in hub.connections
        assert healthy.sent == [{"event": "ping", "data": {}}]
        assert hub.is_user_connected(1)

    def test_disconnect_cleans_rooms(self):
        hub = ConnectionHub()
        socket = FakeSocket()

        asyncio.run(hub.connect(socket, 3))
        assert hub.disconnect(socket) == 3

        assert hub.rooms == {}
        assert not hub.is_user_connected(3)
