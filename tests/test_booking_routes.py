import re
from decimal import Decimal

from conftest import auth_headers, give_skills, make_booking, tomorrow
from handyhive.models.notification_model import Notification


def booking_body(provider, **overrides):
    body = {
        "provider_id": str(provider.id),
        "service_category": "Plumbing",
        "scheduled_date": tomorrow().isoformat(),
        "scheduled_time": "10:00 AM",
        "payment_method": "online",
        "customer_address": "12 MG Road, Bengaluru",
    }
    body.update(overrides)
    return body


def test_customer_creates_booking(client, db, customer, provider):
    response = client.post("/api/bookings", json=booking_body(provider), headers=auth_headers(customer))
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "requested"
    assert data["version"] == 1
    assert data["service_category"] == "plumbing"
    assert data["customer_id"] == str(customer.id)
    assert Decimal(data["total_amount"]) == Decimal("411")
    assert Decimal(data["tax"]) == Decimal("63")
    assert re.fullmatch(r"HH\d{6}[0-9A-F]{6}", data["booking_code"])

    titles = [n.title for n in db.query(Notification).filter(Notification.user_id == str(provider.id))]
    assert "New Booking Request" in titles


def test_emergency_booking_costs_more(client, customer, provider):
    response = client.post(
        "/api/bookings", json=booking_body(provider, is_emergency=True), headers=auth_headers(customer)
    )
    assert response.status_code == 201
    # 448.50 + 49 visit + 90 tax
    assert Decimal(response.json()["total_amount"]) == Decimal("587.50")


def test_booking_requires_login(client, provider):
    assert client.post("/api/bookings", json=booking_body(provider)).status_code == 401


def test_cannot_book_yourself(client, provider):
    response = client.post("/api/bookings", json=booking_body(provider), headers=auth_headers(provider))
    assert response.status_code == 400


def test_cannot_book_a_customer_account(client, customer, stranger):
    response = client.post("/api/bookings", json=booking_body(stranger), headers=auth_headers(customer))
    assert response.status_code == 404


def test_cannot_book_a_service_the_provider_does_not_offer(client, db, customer, provider):
    headers = auth_headers(customer)
    response = client.post("/api/bookings", json=booking_body(provider, service_category="Cleaning"), headers=headers)
    assert response.status_code == 400
    assert "cleaning" in response.json()["detail"]
    assert client.get("/api/bookings", headers=headers).json() == []

    give_skills(db, provider, "plumbing", "cleaning")
    response = client.post("/api/bookings", json=booking_body(provider, service_category="Cleaning"), headers=headers)
    assert response.status_code == 201


def test_booked_slot_is_rejected(client, customer, stranger, provider):
    first = client.post("/api/bookings", json=booking_body(provider), headers=auth_headers(customer))
    assert first.status_code == 201
    second = client.post("/api/bookings", json=booking_body(provider), headers=auth_headers(stranger))
    assert second.status_code == 409


def test_cancelled_booking_frees_the_slot(client, customer, stranger, provider):
    first = client.post("/api/bookings", json=booking_body(provider), headers=auth_headers(customer)).json()
    client.post(
        f"/api/bookings/{first['id']}/cancel", json={"reason": "Trip"}, headers=auth_headers(customer)
    )
    second = client.post("/api/bookings", json=booking_body(provider), headers=auth_headers(stranger))
    assert second.status_code == 201


def test_past_date_is_rejected(client, customer, provider):
    response = client.post(
        "/api/bookings",
        json=booking_body(provider, scheduled_date="2020-01-01"),
        headers=auth_headers(customer),
    )
    assert response.status_code == 422


def test_listing_bookings_by_role(client, db, customer, provider):
    make_booking(db, customer, provider)

    as_customer = client.get("/api/bookings", headers=auth_headers(customer))
    assert len(as_customer.json()) == 1

    as_provider = client.get("/api/bookings?role=provider", headers=auth_headers(provider))
    assert len(as_provider.json()) == 1
    assert client.get("/api/bookings", headers=auth_headers(provider)).json() == []

    assert client.get("/api/bookings?role=provider", headers=auth_headers(customer)).status_code == 403


def test_listing_filters_by_status(client, db, customer, provider):
    make_booking(db, customer, provider, scheduled_time="9:00 AM")
    other = make_booking(db, customer, provider, scheduled_time="5:00 PM")
    client.post(f"/api/bookings/{other.id}/cancel", json={"reason": "Duplicate"}, headers=auth_headers(customer))

    response = client.get("/api/bookings?booking_status=cancelled", headers=auth_headers(customer))
    assert [b["id"] for b in response.json()] == [str(other.id)]


def test_outsider_cannot_see_booking(client, booking, stranger, admin):
    response = client.get(f"/api/bookings/{booking.id}", headers=auth_headers(stranger))
    assert response.status_code == 403
    assert response.json()["code"] == "unauthorized"

    assert client.get(f"/api/bookings/{booking.id}", headers=auth_headers(admin)).status_code == 200


def test_unknown_booking_is_404(client, customer):
    response = client.get("/api/bookings/00000000-0000-0000-0000-000000000000", headers=auth_headers(customer))
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_provider_walks_booking_through_lifecycle(client, booking, customer, provider):
    headers = auth_headers(provider)
    assert client.post(f"/api/bookings/{booking.id}/accept", headers=headers).json()["status"] == "accepted"
    assert client.post(f"/api/bookings/{booking.id}/start", headers=headers).json()["status"] == "in_progress"
    done = client.post(f"/api/bookings/{booking.id}/complete", headers=headers).json()
    assert done["status"] == "completed"
    assert done["version"] == 4

    fetched = client.get(f"/api/bookings/{booking.id}", headers=auth_headers(customer)).json()
    assert fetched["status"] == "completed"


def test_generic_transition_endpoint(client, booking, provider):
    response = client.post(
        f"/api/bookings/{booking.id}/transition",
        json={"target_status": "cancelled", "reason": "Not available"},
        headers=auth_headers(provider),
    )
    assert response.status_code == 200
    assert response.json()["cancelled_by"] == "provider"


def test_error_codes_are_rendered(client, booking, customer, provider, unverified_provider):
    skip = client.post(f"/api/bookings/{booking.id}/complete", headers=auth_headers(provider))
    assert skip.status_code == 409
    assert skip.json()["code"] == "invalid_transition"

    no_reason = client.post(f"/api/bookings/{booking.id}/cancel", json={}, headers=auth_headers(customer))
    assert no_reason.status_code == 422
    assert no_reason.json()["code"] == "reason_required"


def test_accept_without_kyc_is_forbidden(client, db, customer, unverified_provider):
    pending = make_booking(db, customer, unverified_provider)
    response = client.post(f"/api/bookings/{pending.id}/accept", headers=auth_headers(unverified_provider))
    assert response.status_code == 403
    assert response.json()["code"] == "kyc_not_approved"


def test_reject_records_reason(client, booking, provider):
    response = client.post(
        f"/api/bookings/{booking.id}/reject", json={"reason": "Out of service area"}, headers=auth_headers(provider)
    )
    assert response.status_code == 200
    assert response.json()["notes"] == "Out of service area"


def test_available_transitions_endpoint(client, booking, customer):
    response = client.get(f"/api/bookings/{booking.id}/transitions", headers=auth_headers(customer))
    assert response.json() == ["cancelled"]


def test_booking_stats(client, db, customer, provider):
    done = make_booking(db, customer, provider, scheduled_time="8:00 AM")
    make_booking(db, customer, provider, scheduled_time="9:00 AM")
    cancelled = make_booking(db, customer, provider, scheduled_time="10:00 AM")

    headers = auth_headers(provider)
    for step in ("accept", "start", "complete"):
        client.post(f"/api/bookings/{done.id}/{step}", headers=headers)
    client.post(f"/api/bookings/{cancelled.id}/cancel", json={"reason": "Sick"}, headers=auth_headers(customer))

    stats = client.get("/api/bookings/stats", headers=auth_headers(customer)).json()
    assert stats["total"] == 3
    assert stats["ongoing"] == 1
    assert stats["completed"] == 1
    assert stats["cancelled"] == 1
    assert Decimal(stats["completed_amount"]) == Decimal("411")


def test_admin_booking_list(client, db, booking, customer, admin):
    assert client.get("/api/admin/bookings", headers=auth_headers(customer)).status_code == 403
    response = client.get(
        f"/api/admin/bookings?customer_id={customer.id}&booking_status=requested", headers=auth_headers(admin)
    )
    assert [b["id"] for b in response.json()] == [str(booking.id)]


def test_admin_cancels_accepted_booking(client, booking, provider, admin):
    client.post(f"/api/bookings/{booking.id}/accept", headers=auth_headers(provider))
    response = client.post(
        f"/api/bookings/{booking.id}/cancel", json={"reason": "Fraud check"}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    assert response.json()["cancelled_by"] == "admin"


def test_responses_carry_request_id(client):
    response = client.get("/", headers={"X-Request-ID": "abc-123"})
    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "abc-123"
    assert "X-Process-Time" in response.headers
