from pydantic import BaseModel
from decimal import Decimal


class ProviderEarnings(BaseModel):
    total_earnings: Decimal
    paid_earnings: Decimal
    pending_payouts: Decimal
    completed_job_count: int
    growth_percent: Decimal


class PlatformRevenue(ProviderEarnings):
    commission_rate: Decimal
    platform_commission: Decimal
    provider_earnings: Decimal
    pending_payments: Decimal
    booking_count: int
