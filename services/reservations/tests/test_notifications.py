from app.application.notifications import NotificationDispatcher, NotificationType


def test_mailbox_lists_newest_first_with_unread_count(client, world, reserve):
    first = reserve()
    second = reserve()
    client.put(f"/reservations/{first['id']}/accept", headers=world.staff_headers)
    client.put(f"/reservations/{second['id']}/reject", json={"reason": "No stock"}, headers=world.staff_headers)

    resp = client.get("/notifications/", headers=world.patient_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["unreadCount"] == 2
    assert [n["title"] for n in body["notifications"]] == ["Reservation Rejected", "Reservation Accepted"]
    assert all(n["userId"] == world.patient.id for n in body["notifications"])


def test_mark_read(client, world, reserve):
    reserve()
    inbox = client.get("/notifications/", headers=world.staff_headers).json()
    notification_id = inbox["notifications"][0]["id"]

    resp = client.put(f"/notifications/{notification_id}/read", headers=world.staff_headers)
    assert resp.status_code == 200
    assert resp.json()["isRead"] is True
    assert client.get("/notifications/", headers=world.staff_headers).json()["unreadCount"] == 0


def test_mark_read_of_someone_elses_notification(client, world, reserve):
    reserve()
    notification_id = client.get("/notifications/", headers=world.staff_headers).json()["notifications"][0]["id"]
    resp = client.put(f"/notifications/{notification_id}/read", headers=world.patient_headers)
    assert resp.status_code == 403
    assert client.put("/notifications/9999/read", headers=world.patient_headers).status_code == 404


def test_mark_all_read(client, world, reserve):
    reserve()
    reserve()
    resp = client.put("/notifications/mark-all-read", headers=world.staff_headers)
    assert resp.status_code == 200
    assert resp.json() == {"updated": 2}
    assert client.get("/notifications/", headers=world.staff_headers).json()["unreadCount"] == 0
    assert client.put("/notifications/mark-all-read", headers=world.staff_headers).json() == {"updated": 0}


class ExplodingDispatcher(NotificationDispatcher):
    def _persist(self, *args, **kwargs):
        raise RuntimeError("mailbox unavailable")


def test_dispatch_failure_is_reported_not_raised(db, world):
    assert ExplodingDispatcher(db).enqueue(
        world.patient.id, NotificationType.RESERVATION_ACCEPTED, "Title", "Body"
    ) is False
    assert NotificationDispatcher(db).enqueue(
        world.patient.id, NotificationType.RESERVATION_ACCEPTED, "Title", "Body"
    ) is True


def test_accept_survives_dispatch_failure(client, world, reserve, monkeypatch):
    reservation = reserve()

    def broken(self, *args, **kwargs):
        raise RuntimeError("mailbox unavailable")

    monkeypatch.setattr(NotificationDispatcher, "_persist", broken)
    resp = client.put(f"/reservations/{reservation['id']}/accept", headers=world.staff_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "ACCEPTED"
    monkeypatch.undo()
    current = client.get(f"/reservations/{reservation['id']}", headers=world.patient_headers).json()
    assert current["status"] == "ACCEPTED"
