import pytest

from conftest import SAT_MORNING, auth_headers, shift_payload


@pytest.fixture
def schedule_id(client, admin, marco, giulia):
    response = client.post(
        "/api/schedule",
        json={"shift": shift_payload(SAT_MORNING), "date": "2030-03-09", "assigned_users": [marco.id, giulia.id]},
        headers=auth_headers(admin),
    )
    return response.json()["id"]


class TestChatRoomApi:

    def test_get_room(self, client, schedule_id, marco, giulia):
        response = client.get(f"/api/chat-room/{schedule_id}", headers=auth_headers(marco))
        assert response.status_code == 200
        body = response.json()
        assert body["schedule_id"] == schedule_id
        assert sorted(body["participant_ids"]) == sorted([marco.id, giulia.id])

    def test_outsider_forbidden(self, client, schedule_id, sara):
        assert client.get(f"/api/chat-room/{schedule_id}", headers=auth_headers(sara)).status_code == 403

    def test_post_and_read_messages(self, client, schedule_id, marco, giulia):
        response = client.post(
            f"/api/chat-room/{schedule_id}/message",
            json={"message": "who brings the flyers?"},
            headers=auth_headers(marco),
        )
        assert response.status_code == 201
        assert response.json()["user"]["firstname"] == "Marco"

        room = client.get(f"/api/chat-room/{schedule_id}", headers=auth_headers(giulia)).json()
        assert [m["text"] for m in room["messages"]] == ["who brings the flyers?"]

    def test_admin_reads_but_cannot_post(self, client, schedule_id, admin):
        assert client.get(f"/api/chat-room/{schedule_id}", headers=auth_headers(admin)).status_code == 200
        response = client.post(
            f"/api/chat-room/{schedule_id}/message",
            json={"message": "hi"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 403

    def test_unread_counts_and_mark_read(self, client, schedule_id, marco, giulia):
        for text in ("a", "b"):
            client.post(f"/api/chat-room/{schedule_id}/message", json={"message": text}, headers=auth_headers(marco))

        counts = client.get("/api/chat-room/unread-counts", headers=auth_headers(giulia)).json()
        assert counts == {"unread_counts": {str(schedule_id): 2}}

        marked = client.post(f"/api/chat-room/{schedule_id}/mark-read", headers=auth_headers(giulia))
        assert marked.status_code == 200

        counts = client.get("/api/chat-room/unread-counts", headers=auth_headers(giulia)).json()
        assert counts["unread_counts"][str(schedule_id)] == 0

    def test_my_schedules(self, client, schedule_id, marco):
        response = client.get("/api/chat-room/my-schedules", headers=auth_headers(marco))
        assert [s["id"] for s in response.json()] == [schedule_id]

    def test_empty_message_is_422(self, client, schedule_id, marco):
        response = client.post(f"/api/chat-room/{schedule_id}/message", json={"message": ""}, headers=auth_headers(marco))
        assert response.status_code == 422
