"""
Tests for booking disputes

- POST /disputes, GET /disputes/mine
- GET /admin/disputes, PUT /admin/disputes/{id}/resolve
"""

from garagehub.enums import BookingStatus
from garagehub.models import Notification
from garagehub.models_booking import Dispute

from .conftest import auth_headers, make_booking


def open_dispute(client, user, booking, reason="Charged for parts that were not replaced"):
    return client.post(
        "/disputes", json={"booking_id": booking.id, "reason": reason}, headers=auth_headers(user)
    )


class TestOpenDispute:
    def test_owner_disputes_own_booking(self, client, owner, vehicle, shop, db, future_day):
        booking = make_booking(db, owner, shop, vehicle, future_day, status=BookingStatus.COMPLETED)

        response = open_dispute(client, owner, booking)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "OPEN"
        assert body["shop_id"] == shop.id
        mine = client.get("/disputes/mine", headers=auth_headers(owner)).json()
        assert [d["id"] for d in mine] == [body["id"]]

    def test_someone_elses_booking(self, client, db, owner, other_owner, vehicle, shop, future_day):
        booking = make_booking(db, owner, shop, vehicle, future_day)
        assert open_dispute(client, other_owner, booking).status_code == 403

    def test_unknown_booking(self, client, owner):
        response = client.post("/disputes", json={"booking_id": 9999, "reason": "x"}, headers=auth_headers(owner))
        assert response.status_code == 404

    def test_one_open_dispute_per_booking(self, client, db, owner, vehicle, shop, future_day):
        booking = make_booking(db, owner, shop, vehicle, future_day)

        assert open_dispute(client, owner, booking).status_code == 201
        assert open_dispute(client, owner, booking).status_code == 409

    def test_shops_cannot_open_disputes(self, client, db, owner, vehicle, shop, future_day):
        booking = make_booking(db, owner, shop, vehicle, future_day)
        assert open_dispute(client, shop.user, booking).status_code == 403


class TestAdminDisputes:
    def test_list_and_filter(self, client, db, admin, owner, vehicle, shop, future_day):
        booking = make_booking(db, owner, shop, vehicle, future_day)
        dispute = open_dispute(client, owner, booking).json()

        everything = client.get("/admin/disputes", headers=auth_headers(admin)).json()
        resolved = client.get("/admin/disputes", params={"status": "RESOLVED"}, headers=auth_headers(admin)).json()

        assert [d["id"] for d in everything] == [dispute["id"]]
        assert resolved == []

    def test_resolve_notifies_both_parties(self, client, db, admin, owner, vehicle, shop, future_day):
        booking = make_booking(db, owner, shop, vehicle, future_day)
        dispute = open_dispute(client, owner, booking).json()

        response = client.put(
            f"/admin/disputes/{dispute['id']}/resolve",
            json={"resolution": "Shop refunds the pad replacement"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "RESOLVED"
        assert body["resolved_by"] == admin.id
        assert body["resolved_at"] is not None
        notified = {n.user_id for n in db.query(Notification).filter(Notification.title == "Dispute Resolved").all()}
        assert notified == {owner.id, shop.user_id}

    def test_closed_dispute_cannot_be_resolved_again(self, client, db, admin, owner, vehicle, shop, future_day):
        booking = make_booking(db, owner, shop, vehicle, future_day)
        dispute = open_dispute(client, owner, booking).json()
        url = f"/admin/disputes/{dispute['id']}/resolve"

        first = client.put(url, json={"resolution": "No fault found", "status": "REJECTED"}, headers=auth_headers(admin))
        second = client.put(url, json={"resolution": "Changed my mind"}, headers=auth_headers(admin))

        assert first.json()["status"] == "REJECTED"
        assert second.status_code == 409
        db.expire_all()
        assert db.get(Dispute, dispute["id"]).resolution == "No fault found"

    def test_resolution_must_close(self, client, db, admin, owner, vehicle, shop, future_day):
        booking = make_booking(db, owner, shop, vehicle, future_day)
        dispute = open_dispute(client, owner, booking).json()

        response = client.put(
            f"/admin/disputes/{dispute['id']}/resolve",
            json={"resolution": "Looking into it", "status": "OPEN"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 422

    def test_non_admins_are_forbidden(self, client, owner):
        assert client.put(
            "/admin/disputes/9999/resolve", json={"resolution": "x"}, headers=auth_headers(owner)
        ).status_code == 403
        assert client.get("/admin/disputes", headers=auth_headers(owner)).status_code == 403

    def test_unknown_dispute(self, client, admin):
        response = client.put("/admin/disputes/9999/resolve", json={"resolution": "x"}, headers=auth_headers(admin))
        assert response.status_code == 404
