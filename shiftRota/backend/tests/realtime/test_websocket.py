import pytest
from starlette.websockets import WebSocketDisconnect

from app.services.realtime import events

from conftest import SAT_MORNING, auth_headers, shift_payload, token_for


def frame(event, data=None):
    return {"event": event, "data": data or {}}


def receive_until(ws, event, limit=10):
    for _ in range(limit):
        message = ws.receive_json()
        if message["event"] == event:
            return message
    raise AssertionError(f"no {event} frame received")


class TestConnect:

    def test_missing_token_is_refused(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws") as ws:
                ws.receive_json()

    def test_bad_token_is_refused(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws?token=garbage") as ws:
                ws.receive_json()


class TestAuthenticate:

    def test_matching_identity_registers(self, client, registry, marco):
        with client.websocket_connect(f"/ws?token={token_for(marco)}") as ws:
            ws.send_json(frame(events.AUTHENTICATE, {"user_id": marco.id}))
            assert ws.receive_json() == {"event": events.AUTHENTICATED, "data": {"user_id": marco.id}}
            assert registry.is_online(marco.id)

    def test_mismatched_identity_is_rejected(self, client, registry, marco, giulia):
        with client.websocket_connect(f"/ws?token={token_for(marco)}") as ws:
            ws.send_json(frame(events.AUTHENTICATE, {"user_id": giulia.id}))
            reply = ws.receive_json()
            assert reply["event"] == events.ERROR
            assert not registry.is_online(giulia.id)
            assert not registry.is_online(marco.id)

    def test_non_json_frame(self, client, marco):
        with client.websocket_connect(f"/ws?token={token_for(marco)}") as ws:
            ws.send_text("hello")
            assert ws.receive_json()["event"] == events.ERROR

    def test_unknown_event(self, client, marco):
        with client.websocket_connect(f"/ws?token={token_for(marco)}") as ws:
            ws.send_json(frame("dance"))
            assert ws.receive_json()["event"] == events.ERROR


class TestBroadcasts:

    def test_confirmation_pushes_notification_and_schedule_update(self, client, admin, marco):
        response = client.post(
            "/api/availability",
            json={"availabilities": [{"shift": shift_payload(SAT_MORNING), "date": "2030-03-09"}]},
            headers=auth_headers(marco),
        )
        entry_id = response.json()[0]["id"]

        with client.websocket_connect(f"/ws?token={token_for(marco)}") as ws:
            ws.send_json(frame(events.AUTHENTICATE, {"user_id": marco.id}))
            receive_until(ws, events.AUTHENTICATED)

            client.patch(
                f"/api/availability/{entry_id}/status",
                json={"status": "confirmed"},
                headers=auth_headers(admin),
            )

            update = receive_until(ws, events.SCHEDULE_UPDATED)
            assert update["data"]["schedule_id"] is not None
            note = receive_until(ws, events.NOTIFICATION)
            assert note["data"]["kind"] == "confirmation"


class TestLobbyChat:

    def test_join_and_send(self, client, marco):
        with client.websocket_connect(f"/ws?token={token_for(marco)}") as ws:
            ws.send_json(frame(events.JOIN_CHAT, {"user_id": marco.id}))
            assert receive_until(ws, events.CHAT_HISTORY)["data"] == []
            assert receive_until(ws, events.ONLINE_USERS)["data"] == {"count": 1}

            ws.send_json(frame(events.SEND_MESSAGE, {"user_id": marco.id, "message": "ciao"}))
            message = receive_until(ws, events.CHAT_MESSAGE)
            assert message["data"]["text"] == "ciao"
            assert message["data"]["user"]["id"] == marco.id

    def test_send_as_someone_else_is_refused(self, client, marco, giulia):
        with client.websocket_connect(f"/ws?token={token_for(marco)}") as ws:
            ws.send_json(frame(events.SEND_MESSAGE, {"user_id": giulia.id, "message": "fake"}))
            assert ws.receive_json()["event"] == events.ERROR


class TestScheduleChat:

    def _confirmed_schedule(self, client, admin, users):
        for user in users:
            created = client.post(
                "/api/availability",
                json={"availabilities": [{"shift": shift_payload(SAT_MORNING), "date": "2030-03-09"}]},
                headers=auth_headers(user),
            ).json()
            client.patch(
                f"/api/availability/{created[0]['id']}/status",
                json={"status": "confirmed"},
                headers=auth_headers(admin),
            )
        return client.get("/api/schedule/my", headers=auth_headers(users[0])).json()[0]["id"]

    def test_join_send_and_receive(self, client, admin, marco, giulia):
        schedule_id = self._confirmed_schedule(client, admin, [marco, giulia])

        with client.websocket_connect(f"/ws?token={token_for(marco)}") as ws:
            ws.send_json(frame(events.JOIN_SCHEDULE_CHAT, {"schedule_id": schedule_id, "user_id": marco.id}))
            history = receive_until(ws, events.SCHEDULE_CHAT_HISTORY)
            assert history["data"] == {"schedule_id": schedule_id, "messages": []}

            ws.send_json(frame(events.SEND_SCHEDULE_MESSAGE, {
                "schedule_id": schedule_id, "user_id": marco.id, "message": "on my way",
            }))
            message = receive_until(ws, events.SCHEDULE_CHAT_MESSAGE)
            assert message["data"]["message"]["text"] == "on my way"

    def test_outsider_cannot_join(self, client, admin, marco, giulia, sara):
        schedule_id = self._confirmed_schedule(client, admin, [marco, giulia])

        with client.websocket_connect(f"/ws?token={token_for(sara)}") as ws:
            ws.send_json(frame(events.JOIN_SCHEDULE_CHAT, {"schedule_id": schedule_id, "user_id": sara.id}))
            reply = ws.receive_json()
            assert reply["event"] == events.ERROR
            assert "not assigned" in reply["data"]["message"]
