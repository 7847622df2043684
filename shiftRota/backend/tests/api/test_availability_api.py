from conftest import SAT_MORNING, auth_headers, shift_payload


def submit(client, user, day="2030-03-09", shift=SAT_MORNING):
    response = client.post(
        "/api/availability",
        json={"availabilities": [{"shift": shift_payload(shift), "date": day}]},
        headers=auth_headers(user),
    )
    assert response.status_code == 201, response.text
    return response.json()[0]


def set_status(client, admin, entry_id, value):
    return client.patch(
        f"/api/availability/{entry_id}/status",
        json={"status": value},
        headers=auth_headers(admin),
    )


class TestSubmitAvailability:

    def test_submit(self, client, marco):
        entry = submit(client, marco, day="2030-03-09T00:00:00.000Z")
        assert entry["status"] == "pending"
        assert entry["date"] == "2030-03-09"
        assert entry["shift"]["location"] == "Piazza Dalmazia"

    def test_unknown_shift_is_400(self, client, marco):
        payload = shift_payload(SAT_MORNING)
        payload["location"] = "Somewhere else"
        response = client.post(
            "/api/availability",
            json={"availabilities": [{"shift": payload, "date": "2030-03-09"}]},
            headers=auth_headers(marco),
        )
        assert response.status_code == 400
        assert "Unknown shift" in response.json()["detail"]

    def test_bad_date_is_422(self, client, marco):
        response = client.post(
            "/api/availability",
            json={"availabilities": [{"shift": shift_payload(), "date": "soon"}]},
            headers=auth_headers(marco),
        )
        assert response.status_code == 422

    def test_empty_list_is_422(self, client, marco):
        response = client.post("/api/availability", json={"availabilities": []}, headers=auth_headers(marco))
        assert response.status_code == 422


class TestListAvailability:

    def test_my_filtered_by_month(self, client, marco):
        submit(client, marco, day="2030-03-09")
        submit(client, marco, day="2030-04-06")

        response = client.get("/api/availability/my?month=3&year=2030", headers=auth_headers(marco))
        assert [e["date"] for e in response.json()] == ["2030-03-09"]

    def test_all_is_admin_only(self, client, marco):
        assert client.get("/api/availability/all", headers=auth_headers(marco)).status_code == 403

    def test_all_includes_owner(self, client, admin, marco):
        submit(client, marco)
        response = client.get("/api/availability/all?status=pending&day=saturday", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()[0]["user"]["firstname"] == "Marco"


class TestStatusUpdate:

    def test_confirm_builds_schedule_and_emails(self, client, admin, marco, email_sink):
        entry = submit(client, marco)

        response = set_status(client, admin, entry["id"], "confirmed")

        assert response.status_code == 200
        assert response.json()["status"] == "confirmed"
        monthly = client.get("/api/schedule/monthly?month=3&year=2030", headers=auth_headers(marco)).json()
        assert len(monthly) == 1
        assert monthly[0]["assigned_users"][0]["user"]["id"] == marco.id
        assert monthly[0]["is_confirmed"] is False
        email_sink.send_availability_status.assert_called_once()
        assert email_sink.send_availability_status.call_args.args[0] == marco.email

    def test_reconfirm_sends_no_second_email(self, client, admin, marco, email_sink):
        entry = submit(client, marco)
        set_status(client, admin, entry["id"], "confirmed")
        set_status(client, admin, entry["id"], "confirmed")
        assert email_sink.send_availability_status.call_count == 1

    def test_email_failure_does_not_fail_confirmation(self, client, admin, marco, email_sink):
        email_sink.send_availability_status.return_value = False
        entry = submit(client, marco)
        assert set_status(client, admin, entry["id"], "confirmed").status_code == 200

    def test_pending_is_not_a_valid_target(self, client, admin, marco):
        entry = submit(client, marco)
        assert set_status(client, admin, entry["id"], "pending").status_code == 422

    def test_only_admin(self, client, marco):
        entry = submit(client, marco)
        assert set_status(client, marco, entry["id"], "confirmed").status_code == 403

    def test_missing_entry(self, client, admin):
        assert set_status(client, admin, 12345, "confirmed").status_code == 404


class TestDeleteAvailability:

    def test_owner_deletes_confirmed_entry(self, client, admin, marco):
        entry = submit(client, marco)
        set_status(client, admin, entry["id"], "confirmed")

        response = client.delete(f"/api/availability/{entry['id']}", headers=auth_headers(marco))

        assert response.status_code == 204
        monthly = client.get("/api/schedule/monthly?month=3&year=2030", headers=auth_headers(marco)).json()
        assert monthly == []

    def test_other_user_is_forbidden(self, client, marco, giulia):
        entry = submit(client, marco)
        response = client.delete(f"/api/availability/{entry['id']}", headers=auth_headers(giulia))
        assert response.status_code == 403
