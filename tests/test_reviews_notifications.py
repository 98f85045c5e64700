"""
Tests for reviews and the notification inbox

- POST /reviews, GET /reviews/shop/{shop_id}
- GET /notifications, PUT /notifications/{id}/read, PUT /notifications/read-all,
  DELETE /notifications/{id}
"""

from garagehub.domain.notifications.service import NotificationService
from garagehub.enums import BookingStatus, NotificationType
from garagehub.models import Notification, Shop

from .conftest import auth_headers, make_booking


class TestReviews:
    def test_rating_is_recomputed(self, client, db, owner, other_owner, other_shop):
        first = client.post(
            "/reviews", json={"shop_id": other_shop.id, "rating": 4}, headers=auth_headers(owner)
        )
        second = client.post(
            "/reviews",
            json={"shop_id": other_shop.id, "rating": 5, "comment": "Quick and fair"},
            headers=auth_headers(other_owner),
        )

        assert first.status_code == 201
        assert second.status_code == 201
        assert first.json()["is_verified"] is False
        db.expire_all()
        refreshed = db.get(Shop, other_shop.id)
        assert refreshed.rating == 4.5
        assert refreshed.review_count == 2

    def test_completed_booking_gives_verified_review(self, client, db, owner, vehicle, shop, future_day):
        booking = make_booking(db, owner, shop, vehicle, future_day, status=BookingStatus.COMPLETED)

        response = client.post(
            "/reviews",
            json={"shop_id": shop.id, "booking_id": booking.id, "rating": 5},
            headers=auth_headers(owner),
        )

        assert response.status_code == 201
        assert response.json()["is_verified"] is True
        assert response.json()["user_name"] == owner.name

    def test_one_review_per_booking(self, client, db, owner, vehicle, shop, future_day):
        booking = make_booking(db, owner, shop, vehicle, future_day, status=BookingStatus.COMPLETED)
        payload = {"shop_id": shop.id, "booking_id": booking.id, "rating": 5}

        assert client.post("/reviews", json=payload, headers=auth_headers(owner)).status_code == 201
        assert client.post("/reviews", json=payload, headers=auth_headers(owner)).status_code == 409

    def test_unfinished_booking_cannot_be_reviewed(self, client, db, owner, vehicle, shop, future_day):
        booking = make_booking(db, owner, shop, vehicle, future_day)
        response = client.post(
            "/reviews",
            json={"shop_id": shop.id, "booking_id": booking.id, "rating": 3},
            headers=auth_headers(owner),
        )
        assert response.status_code == 400

    def test_someone_elses_booking(self, client, db, owner, other_owner, vehicle, shop, future_day):
        booking = make_booking(db, owner, shop, vehicle, future_day, status=BookingStatus.COMPLETED)
        response = client.post(
            "/reviews",
            json={"shop_id": shop.id, "booking_id": booking.id, "rating": 1},
            headers=auth_headers(other_owner),
        )
        assert response.status_code == 404

    def test_rating_bounds(self, client, owner, shop):
        response = client.post("/reviews", json={"shop_id": shop.id, "rating": 6}, headers=auth_headers(owner))
        assert response.status_code == 422

    def test_shop_is_notified_and_reviews_are_public(self, client, db, owner, shop):
        client.post("/reviews", json={"shop_id": shop.id, "rating": 4}, headers=auth_headers(owner))

        titles = [n.title for n in db.query(Notification).filter(Notification.user_id == shop.user_id).all()]
        assert titles == ["New Review"]
        listed = client.get(f"/reviews/shop/{shop.id}").json()
        assert [r["rating"] for r in listed] == [4]


class TestNotificationInbox:
    def _seed(self, db, user, count=3):
        service = NotificationService(db)
        return [
            service.notify(user.id, NotificationType.SYSTEM, f"Notice {i}", "Hello") for i in range(count)
        ]

    def test_list_with_unread_count(self, client, db, owner):
        self._seed(db, owner)

        body = client.get("/notifications", headers=auth_headers(owner)).json()

        assert body["unread_count"] == 3
        assert [n["title"] for n in body["notifications"]] == ["Notice 2", "Notice 1", "Notice 0"]

    def test_mark_one_read(self, client, owner, db):
        notifications = self._seed(db, owner)

        response = client.put(f"/notifications/{notifications[0].id}/read", headers=auth_headers(owner))

        assert response.status_code == 200
        assert response.json()["is_read"] is True
        unread = client.get("/notifications", params={"unread_only": "true"}, headers=auth_headers(owner)).json()
        assert unread["unread_count"] == 2
        assert len(unread["notifications"]) == 2

    def test_mark_all_read(self, client, db, owner):
        self._seed(db, owner)

        response = client.put("/notifications/read-all", headers=auth_headers(owner))

        assert response.json() == {"success": True, "updated": 3}
        assert client.get("/notifications", headers=auth_headers(owner)).json()["unread_count"] == 0

    def test_cannot_touch_other_users_notifications(self, client, db, owner, other_owner):
        notification = self._seed(db, owner, count=1)[0]

        assert client.put(
            f"/notifications/{notification.id}/read", headers=auth_headers(other_owner)
        ).status_code == 403
        assert client.delete(f"/notifications/{notification.id}", headers=auth_headers(other_owner)).status_code == 403

    def test_delete(self, client, db, owner):
        notification = self._seed(db, owner, count=1)[0]

        response = client.delete(f"/notifications/{notification.id}", headers=auth_headers(owner))

        assert response.json() == {"success": True}
        assert client.get("/notifications", headers=auth_headers(owner)).json()["notifications"] == []
