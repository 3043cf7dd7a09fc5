"""
Earnings and commission projection over bookings.

Everything here is a pure function of the booking rows passed in. Callers
load the rows on every request so a booking that just completed shows up
immediately; nothing is cached.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Tuple

from handyhive.schemas.booking_schema import BookingStatus, PaymentStatus

CENTS = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

ONGOING_STATUSES = {BookingStatus.requested.value, BookingStatus.accepted.value, BookingStatus.in_progress.value}

Window = Tuple[Optional[datetime], Optional[datetime]]


@dataclass(frozen=True)
class EarningsSummary:
    total_earnings: Decimal
    paid_earnings: Decimal
    pending_payouts: Decimal
    completed_job_count: int
    growth_percent: Decimal


@dataclass(frozen=True)
class PlatformRevenueSummary:
    total_earnings: Decimal
    paid_earnings: Decimal
    pending_payouts: Decimal
    completed_job_count: int
    growth_percent: Decimal
    commission_rate: Decimal
    platform_commission: Decimal
    provider_earnings: Decimal
    pending_payments: Decimal
    booking_count: int


@dataclass(frozen=True)
class BookingStatsSummary:
    total: int
    ongoing: int
    completed: int
    cancelled: int
    completed_amount: Decimal


def money(value) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def _as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored in UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def month_start(moment: datetime) -> datetime:
    return _as_utc(moment).replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def previous_month_start(moment: datetime) -> datetime:
    start = month_start(moment)
    if start.month == 1:
        return start.replace(year=start.year - 1, month=12)
    return start.replace(month=start.month - 1)


def next_month_start(moment: datetime) -> datetime:
    start = month_start(moment)
    if start.month == 12:
        return start.replace(year=start.year + 1, month=1)
    return start.replace(month=start.month + 1)


def in_window(moment: datetime, window: Optional[Window]) -> bool:
    if window is None:
        return True
    start, end = window
    moment = _as_utc(moment)
    if start is not None and moment < _as_utc(start):
        return False
    if end is not None and moment > _as_utc(end):
        return False
    return True


def _sum(bookings: Iterable) -> Decimal:
    return sum((Decimal(b.total_amount) for b in bookings), ZERO)


def completed(bookings: Iterable) -> List:
    return [b for b in bookings if b.status == BookingStatus.completed.value]


def growth_percent(current: Decimal, prior: Decimal) -> Decimal:
    """Month-over-month change in percent; 100 when growing from nothing"""
    current, prior = Decimal(current), Decimal(prior)
    if prior == ZERO:
        return HUNDRED.quantize(CENTS) if current > ZERO else ZERO.quantize(CENTS)
    return money((current - prior) / prior * HUNDRED)


def monthly_growth(bookings: Iterable, now: datetime) -> Decimal:
    """Compare completed revenue of the calendar month of ``now`` with the month before"""
    done = completed(bookings)
    this_month = (month_start(now), next_month_start(now))
    last_month = (previous_month_start(now), month_start(now))

    def revenue(bounds):
        lower, upper = bounds
        return _sum(b for b in done if lower <= _as_utc(b.created_at) < upper)

    return growth_percent(revenue(this_month), revenue(last_month))


def summarize_provider_earnings(bookings: Iterable, now: datetime, window: Optional[Window] = None) -> EarningsSummary:
    bookings = list(bookings)
    done = [b for b in completed(bookings) if in_window(b.created_at, window)]
    paid = [b for b in done if b.payment_status == PaymentStatus.paid.value]
    pending = [b for b in done if b.payment_status == PaymentStatus.pending.value]
    return EarningsSummary(
        total_earnings=money(_sum(done)),
        paid_earnings=money(_sum(paid)),
        pending_payouts=money(_sum(pending)),
        completed_job_count=len(done),
        growth_percent=monthly_growth(bookings, now),
    )


def split_commission(total: Decimal, commission_rate: Decimal) -> Tuple[Decimal, Decimal]:
    """Return (platform_commission, provider_earnings) for a revenue total"""
    commission = money(Decimal(total) * Decimal(commission_rate))
    return commission, money(Decimal(total) - commission)


def summarize_platform_revenue(
        bookings: Iterable, now: datetime, commission_rate: Decimal, window: Optional[Window] = None
) -> PlatformRevenueSummary:
    bookings = list(bookings)
    provider_view = summarize_provider_earnings(bookings, now, window)
    commission, provider_share = split_commission(provider_view.total_earnings, commission_rate)
    in_range = [b for b in bookings if in_window(b.created_at, window)]
    unpaid = [
        b for b in in_range
        if b.payment_status == PaymentStatus.pending.value and b.status != BookingStatus.cancelled.value
    ]
    return PlatformRevenueSummary(
        total_earnings=provider_view.total_earnings,
        paid_earnings=provider_view.paid_earnings,
        pending_payouts=provider_view.pending_payouts,
        completed_job_count=provider_view.completed_job_count,
        growth_percent=provider_view.growth_percent,
        commission_rate=Decimal(commission_rate),
        platform_commission=commission,
        provider_earnings=provider_share,
        pending_payments=money(_sum(unpaid)),
        booking_count=len(in_range),
    )


def booking_stats(bookings: Iterable) -> BookingStatsSummary:
    bookings = list(bookings)
    done = completed(bookings)
    return BookingStatsSummary(
        total=len(bookings),
        ongoing=sum(1 for b in bookings if b.status in ONGOING_STATUSES),
        completed=len(done),
        cancelled=sum(1 for b in bookings if b.status == BookingStatus.cancelled.value),
        completed_amount=money(_sum(done)),
    )
