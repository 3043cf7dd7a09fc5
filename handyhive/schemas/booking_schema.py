from pydantic import BaseModel, Field, field_validator
from typing import Optional
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal
from enum import Enum


class BookingStatus(str, Enum):
    requested = "requested"
    accepted = "accepted"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


TERMINAL_STATUSES = frozenset({BookingStatus.completed, BookingStatus.cancelled})


class PaymentMethod(str, Enum):
    online = "online"
    cash = "cash"


class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    failed = "failed"


class BookingCreate(BaseModel):
    provider_id: UUID = Field(..., description="Provider being booked")
    service_category: str = Field(..., min_length=1, max_length=50, examples=["plumbing"])
    scheduled_date: date = Field(..., description="Day of the visit")
    scheduled_time: str = Field(..., min_length=1, max_length=20, examples=["10:00 AM"])
    payment_method: PaymentMethod = PaymentMethod.online
    customer_address: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=1000)
    is_emergency: bool = False

    @field_validator('service_category')
    @classmethod
    def normalize_category(cls, v):
        return v.strip().lower()

    @field_validator('scheduled_date')
    @classmethod
    def scheduled_date_not_in_past(cls, v):
        if v < date.today():
            raise ValueError('scheduled_date cannot be in the past')
        return v


class TransitionRequest(BaseModel):
    target_status: BookingStatus
    reason: Optional[str] = Field(None, max_length=1000)


class ReasonRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class BookingResponse(BaseModel):
    id: UUID
    booking_code: str
    customer_id: UUID
    provider_id: UUID
    service_category: str
    scheduled_date: date
    scheduled_time: str
    status: BookingStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    subtotal: Decimal
    visit_charge: Decimal
    tax: Decimal
    total_amount: Decimal
    customer_address: Optional[str] = None
    notes: Optional[str] = None
    cancelled_by: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BookingStats(BaseModel):
    total: int
    ongoing: int
    completed: int
    cancelled: int
    completed_amount: Decimal
