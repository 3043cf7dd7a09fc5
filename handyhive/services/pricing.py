"""
Booking price quotes.

Amounts are quoted once when a booking is created and stored on the row;
nothing downstream recomputes them.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

BASE_SERVICE_PRICE = {
    "plumbing": Decimal("299"),
    "electrical": Decimal("349"),
    "carpentry": Decimal("399"),
    "painting": Decimal("449"),
    "cleaning": Decimal("249"),
    "ac-repair": Decimal("499"),
    "appliance": Decimal("399"),
    "pest": Decimal("349"),
}
DEFAULT_SERVICE_PRICE = Decimal("299")
VISIT_CHARGE = Decimal("49")
TAX_RATE = Decimal("0.18")  # GST
EMERGENCY_MULTIPLIER = Decimal("1.5")
MINIMUM_BOOKING_AMOUNT = Decimal("100")

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PriceQuote:
    subtotal: Decimal
    visit_charge: Decimal
    tax: Decimal
    total: Decimal


def base_price(service_category: str) -> Decimal:
    return BASE_SERVICE_PRICE.get(service_category.strip().lower(), DEFAULT_SERVICE_PRICE)


def build_quote(subtotal: Decimal, visit_charge: Decimal, tax: Decimal) -> PriceQuote:
    subtotal = Decimal(subtotal).quantize(CENTS, rounding=ROUND_HALF_UP)
    visit_charge = Decimal(visit_charge).quantize(CENTS, rounding=ROUND_HALF_UP)
    tax = Decimal(tax).quantize(CENTS, rounding=ROUND_HALF_UP)
    return PriceQuote(subtotal, visit_charge, tax, subtotal + visit_charge + tax)


def quote_booking(service_category: str, is_emergency: bool = False) -> PriceQuote:
    """Price a visit: base price (+50% for emergencies), visit charge, tax rounded to the rupee."""
    subtotal = base_price(service_category)
    if is_emergency:
        subtotal = subtotal * EMERGENCY_MULTIPLIER
    tax = ((subtotal + VISIT_CHARGE) * TAX_RATE).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    quote = build_quote(subtotal, VISIT_CHARGE, tax)
    if quote.total < MINIMUM_BOOKING_AMOUNT:
        raise ValueError(f"Booking total {quote.total} is below the minimum of {MINIMUM_BOOKING_AMOUNT}")
    return quote
