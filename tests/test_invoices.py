"""
Tests for final billing

- POST /invoices - totals, deposit, variance against the quote, one per booking
- PUT /invoices/{id}/approve - payment completes the booking
- Invoiced bookings keep their slot: no cancel or reschedule
- GET /invoices and /invoices/booking/{booking_id}
"""

import pytest

from garagehub.domain.availability.repository import AvailabilityRepository
from garagehub.models_booking import Booking, TimeSlot
from garagehub.models_invoice import Invoice

from .conftest import auth_headers
from .test_quotes import create_request, respond


@pytest.fixture
def quoted_booking(client, owner, vehicle, shop, slot):
    """Booking made against a 200.00 quote (tax free), so the deposit is 40.00"""
    request_id = create_request(client, owner, vehicle).json()["id"]
    quote_id = respond(client, shop, request_id, part_cost=200).json()["id"]
    response = client.post(
        "/bookings",
        json={"shop_id": shop.id, "vehicle_id": vehicle.id, "time_slot_id": slot.id, "quote_id": quote_id},
        headers=auth_headers(owner),
    )
    assert response.status_code == 201
    return response.json()


def invoice(client, shop, booking_id, part_cost=250.0, **extra):
    payload = {
        "booking_id": booking_id,
        "line_items": [{"description": "Front pads and rotors", "part_cost": part_cost, "quantity": 1}],
        "tax_rate": 0,
        **extra,
    }
    return client.post("/invoices", json=payload, headers=auth_headers(shop.user))


class TestCreateInvoice:
    def test_invoice_totals_and_variance(self, client, shop, quoted_booking):
        response = invoice(client, shop, quoted_booking["id"])

        assert response.status_code == 201
        body = response.json()
        assert body["invoice_number"].startswith("INV-")
        assert body["total_amount"] == 250.0
        assert body["deposit_applied"] == 40.0
        assert body["amount_due"] == 210.0
        assert body["quote_total"] == 200.0
        assert body["variance"] == 25.0
        assert body["variance_over_tolerance"] is True
        assert body["status"] == "PENDING"

    def test_within_tolerance(self, client, shop, quoted_booking):
        body = invoice(client, shop, quoted_booking["id"], part_cost=210).json()
        assert body["variance"] == 5.0
        assert body["variance_over_tolerance"] is False

    def test_second_invoice_conflicts(self, client, shop, quoted_booking):
        assert invoice(client, shop, quoted_booking["id"]).status_code == 201
        assert invoice(client, shop, quoted_booking["id"]).status_code == 409

    def test_other_shop_cannot_invoice(self, client, other_shop, quoted_booking):
        assert invoice(client, other_shop, quoted_booking["id"]).status_code == 403

    def test_cancelled_booking_cannot_be_invoiced(self, client, owner, shop, quoted_booking):
        client.put(f"/bookings/{quoted_booking['id']}/cancel", headers=auth_headers(owner))
        assert invoice(client, shop, quoted_booking["id"]).status_code == 409

    def test_booking_without_slot_cannot_be_invoiced(self, client, db, shop, quoted_booking):
        AvailabilityRepository.release_for_booking(db, quoted_booking["id"])
        db.commit()

        assert invoice(client, shop, quoted_booking["id"]).status_code == 409

    def test_owner_cannot_issue_invoice(self, client, owner, quoted_booking):
        payload = {"booking_id": quoted_booking["id"], "line_items": [{"description": "x", "part_cost": 1}]}
        response = client.post("/invoices", json=payload, headers=auth_headers(owner))
        assert response.status_code == 403


class TestApproveInvoice:
    def test_approval_pays_and_completes_booking(self, client, db, owner, shop, quoted_booking):
        invoice_id = invoice(client, shop, quoted_booking["id"]).json()["id"]

        response = client.put(f"/invoices/{invoice_id}/approve", headers=auth_headers(owner))

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "PAID"
        assert body["amount_paid"] == 210.0
        assert body["paid_at"] is not None
        db.expire_all()
        assert db.get(Booking, quoted_booking["id"]).status == "COMPLETED"

    def test_paid_invoice_cannot_be_approved_again(self, client, owner, shop, quoted_booking):
        invoice_id = invoice(client, shop, quoted_booking["id"]).json()["id"]
        client.put(f"/invoices/{invoice_id}/approve", headers=auth_headers(owner))

        response = client.put(f"/invoices/{invoice_id}/approve", headers=auth_headers(owner))
        assert response.status_code == 409

    def test_only_booking_owner_approves(self, client, other_owner, shop, quoted_booking):
        invoice_id = invoice(client, shop, quoted_booking["id"]).json()["id"]
        response = client.put(f"/invoices/{invoice_id}/approve", headers=auth_headers(other_owner))
        assert response.status_code == 403


class TestReadInvoices:
    def test_lists_by_role(self, client, owner, other_owner, shop, other_shop, quoted_booking):
        invoice_id = invoice(client, shop, quoted_booking["id"]).json()["id"]

        assert [i["id"] for i in client.get("/invoices", headers=auth_headers(owner)).json()] == [invoice_id]
        assert [i["id"] for i in client.get("/invoices", headers=auth_headers(shop.user)).json()] == [invoice_id]
        assert client.get("/invoices", headers=auth_headers(other_owner)).json() == []
        assert client.get("/invoices", headers=auth_headers(other_shop.user)).json() == []

    def test_invoice_for_booking(self, client, owner, other_owner, shop, quoted_booking):
        invoice_id = invoice(client, shop, quoted_booking["id"]).json()["id"]

        response = client.get(f"/invoices/booking/{quoted_booking['id']}", headers=auth_headers(owner))
        assert response.status_code == 200
        assert response.json()["id"] == invoice_id

        forbidden = client.get(f"/invoices/booking/{quoted_booking['id']}", headers=auth_headers(other_owner))
        assert forbidden.status_code == 403

    def test_booking_without_invoice(self, client, owner, quoted_booking):
        response = client.get(f"/invoices/booking/{quoted_booking['id']}", headers=auth_headers(owner))
        assert response.status_code == 404


class TestInvoicedBookingLifecycle:
    def test_invoiced_booking_cannot_be_cancelled(self, client, db, owner, shop, slot, quoted_booking):
        invoice(client, shop, quoted_booking["id"])

        via_status = client.put(
            f"/bookings/{quoted_booking['id']}/status", json={"status": "CANCELLED"}, headers=auth_headers(owner)
        )
        via_cancel = client.put(f"/bookings/{quoted_booking['id']}/cancel", headers=auth_headers(owner))
        by_shop = client.put(
            f"/bookings/{quoted_booking['id']}/status", json={"status": "CANCELLED"}, headers=auth_headers(shop.user)
        )

        assert via_status.status_code == 409
        assert via_cancel.status_code == 409
        assert by_shop.status_code == 409
        db.expire_all()
        assert db.get(TimeSlot, slot.id).booking_id == quoted_booking["id"]
        assert db.get(Booking, quoted_booking["id"]).status == "PENDING"

    def test_invoiced_booking_cannot_be_rescheduled(self, client, db, owner, shop, slot, second_slot, quoted_booking):
        invoice(client, shop, quoted_booking["id"])

        response = client.put(
            f"/bookings/{quoted_booking['id']}/reschedule",
            json={"new_date": second_slot.date.isoformat(), "new_time": second_slot.start_time},
            headers=auth_headers(owner),
        )

        assert response.status_code == 409
        db.expire_all()
        assert db.get(TimeSlot, slot.id).booking_id == quoted_booking["id"]
        assert db.get(TimeSlot, second_slot.id).is_booked is False

    def test_cancelled_booking_invoice_cannot_be_approved(self, client, db, owner, shop, quoted_booking):
        invoice_id = invoice(client, shop, quoted_booking["id"]).json()["id"]
        booking = db.get(Booking, quoted_booking["id"])
        booking.status = "CANCELLED"
        db.commit()

        response = client.put(f"/invoices/{invoice_id}/approve", headers=auth_headers(owner))

        assert response.status_code == 409
        db.expire_all()
        assert db.get(Booking, quoted_booking["id"]).status == "CANCELLED"
        assert db.get(Invoice, invoice_id).status == "PENDING"
