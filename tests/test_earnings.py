from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

from conftest import auth_headers, make_booking
from handyhive.services.earnings import (
    booking_stats,
    growth_percent,
    monthly_growth,
    split_commission,
    summarize_platform_revenue,
    summarize_provider_earnings,
)

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


def row(amount, status="completed", payment_status="paid", created_at=NOW):
    return SimpleNamespace(
        total_amount=Decimal(amount), status=status, payment_status=payment_status, created_at=created_at
    )


def test_commission_split():
    commission, provider_share = split_commission(Decimal("425"), Decimal("0.15"))
    assert commission == Decimal("63.75")
    assert provider_share == Decimal("361.25")


def test_platform_split_over_completed_jobs():
    revenue = summarize_platform_revenue([row("100"), row("250"), row("75")], NOW, Decimal("0.15"))
    assert revenue.total_earnings == Decimal("425.00")
    assert revenue.platform_commission == Decimal("63.75")
    assert revenue.provider_earnings == Decimal("361.25")


def test_growth_percent_examples():
    assert growth_percent(Decimal("500"), Decimal("0")) == Decimal("100.00")
    assert growth_percent(Decimal("800"), Decimal("1000")) == Decimal("-20.00")


def test_provider_earnings_only_count_completed_jobs():
    bookings = [
        row("411", payment_status="paid"),
        row("249", payment_status="pending"),
        row("399", status="cancelled", payment_status="pending"),
        row("299", status="accepted", payment_status="pending"),
    ]
    summary = summarize_provider_earnings(bookings, NOW)
    assert summary.total_earnings == Decimal("660.00")
    assert summary.paid_earnings == Decimal("411.00")
    assert summary.pending_payouts == Decimal("249.00")
    assert summary.completed_job_count == 2


def test_growth_against_previous_month():
    previous = datetime(2025, 2, 10, tzinfo=timezone.utc)
    bookings = [row("500", created_at=previous), row("400")]
    assert monthly_growth(bookings, NOW) == Decimal("-20.00")


def test_growth_from_nothing_is_one_hundred_percent():
    assert growth_percent(Decimal("250"), Decimal("0")) == Decimal("100.00")
    assert growth_percent(Decimal("0"), Decimal("0")) == Decimal("0.00")


def test_growth_wraps_across_new_year():
    january = datetime(2025, 1, 5, tzinfo=timezone.utc)
    december = datetime(2024, 12, 20, tzinfo=timezone.utc)
    bookings = [row("100", created_at=december), row("200", created_at=january)]
    assert monthly_growth(bookings, january) == Decimal("100.00")


def test_naive_timestamps_are_treated_as_utc():
    naive = datetime(2025, 3, 2, 9, 30)
    assert summarize_provider_earnings([row("100", created_at=naive)], NOW).growth_percent == Decimal("100.00")


def test_window_filters_on_creation_date():
    early = datetime(2025, 1, 10, tzinfo=timezone.utc)
    bookings = [row("100", created_at=early), row("300")]
    window = (datetime(2025, 3, 1, tzinfo=timezone.utc), None)
    assert summarize_provider_earnings(bookings, NOW, window).total_earnings == Decimal("300.00")


def test_platform_revenue():
    bookings = [
        row("425", payment_status="paid"),
        row("411", status="requested", payment_status="pending"),
        row("249", status="cancelled", payment_status="pending"),
    ]
    revenue = summarize_platform_revenue(bookings, NOW, Decimal("0.15"))
    assert revenue.total_earnings == Decimal("425.00")
    assert revenue.platform_commission == Decimal("63.75")
    assert revenue.provider_earnings == Decimal("361.25")
    assert revenue.pending_payments == Decimal("411.00")
    assert revenue.booking_count == 3


def test_booking_stats_counts():
    stats = booking_stats([row("411"), row("299", status="in_progress"), row("249", status="cancelled")])
    assert (stats.total, stats.ongoing, stats.completed, stats.cancelled) == (3, 1, 1, 1)
    assert stats.completed_amount == Decimal("411.00")


def test_earnings_reflect_a_job_completed_moments_ago(client, db, customer, provider):
    booking = make_booking(db, customer, provider)
    headers = auth_headers(provider)
    before = client.get("/api/providers/me/earnings", headers=headers).json()
    assert Decimal(before["total_earnings"]) == Decimal("0")

    for step in ("accept", "start", "complete"):
        client.post(f"/api/bookings/{booking.id}/{step}", headers=headers)

    after = client.get("/api/providers/me/earnings", headers=headers).json()
    assert Decimal(after["total_earnings"]) == Decimal("411")
    assert Decimal(after["pending_payouts"]) == Decimal("411")
    assert after["completed_job_count"] == 1


def test_earnings_are_for_providers_only(client, customer):
    assert client.get("/api/providers/me/earnings", headers=auth_headers(customer)).status_code == 403


def test_admin_revenue(client, db, customer, provider, admin):
    booking = make_booking(db, customer, provider)
    for step in ("accept", "start", "complete"):
        client.post(f"/api/bookings/{booking.id}/{step}", headers=auth_headers(provider))

    revenue = client.get("/api/admin/revenue", headers=auth_headers(admin)).json()
    assert Decimal(revenue["total_earnings"]) == Decimal("411")
    assert Decimal(revenue["platform_commission"]) == Decimal("61.65")
    assert Decimal(revenue["provider_earnings"]) == Decimal("349.35")
    assert Decimal(revenue["commission_rate"]) == Decimal("0.15")

    assert client.get("/api/admin/revenue", headers=auth_headers(provider)).status_code == 403


def test_inverted_window_is_rejected(client, provider):
    response = client.get(
        "/api/providers/me/earnings?from_date=2025-03-10T00:00:00&to_date=2025-03-01T00:00:00",
        headers=auth_headers(provider),
    )
    assert response.status_code == 400
