from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime, timezone
from handyhive.config import PLATFORM_COMMISSION_RATE
from handyhive.database import get_db
from handyhive.models.booking_model import Booking
from handyhive.models.user_model import User
from handyhive.schemas.earnings_schema import PlatformRevenue, ProviderEarnings
from handyhive.security.auth import get_current_admin_user, get_current_provider_user
from handyhive.services.booking_crud import booking_crud
from handyhive.services.earnings import summarize_platform_revenue, summarize_provider_earnings
from handyhive.logger import get_logger

earnings_router = APIRouter()
logger = get_logger(__name__)


def _window(from_date: Optional[datetime], to_date: Optional[datetime]):
    if from_date and to_date and from_date > to_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="from_date must be before to_date",
        )
    if from_date is None and to_date is None:
        return None
    return from_date, to_date


@earnings_router.get(
    "/providers/me/earnings", response_model=ProviderEarnings, status_code=status.HTTP_200_OK
)
def get_my_earnings(
    from_date: Optional[datetime] = Query(None, description="Only bookings created from this date"),
    to_date: Optional[datetime] = Query(None, description="Only bookings created up to this date"),
    current_user: User = Depends(get_current_provider_user),
    db: Session = Depends(get_db),
):
    """Completed-job revenue for the current provider, computed from live rows"""
    window = _window(from_date, to_date)
    try:
        bookings = booking_crud.get_all_for_party(db, current_user.id, as_provider=True)
        summary = summarize_provider_earnings(bookings, datetime.now(timezone.utc), window)
        return ProviderEarnings(**summary.__dict__)

    except Exception as e:
        logger.error(f"Error computing earnings for {current_user.email}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while computing earnings",
        )


@earnings_router.get(
    "/admin/revenue", response_model=PlatformRevenue, status_code=status.HTTP_200_OK
)
def get_platform_revenue(
    from_date: Optional[datetime] = Query(None, description="Only bookings created from this date"),
    to_date: Optional[datetime] = Query(None, description="Only bookings created up to this date"),
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Platform revenue and commission split (admin only)"""
    window = _window(from_date, to_date)
    try:
        logger.info(f"Admin {current_user.email} fetching platform revenue")
        bookings = db.query(Booking).all()
        summary = summarize_platform_revenue(
            bookings, datetime.now(timezone.utc), PLATFORM_COMMISSION_RATE, window
        )
        return PlatformRevenue(**summary.__dict__)

    except Exception as e:
        logger.error(f"Error computing platform revenue: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while computing revenue",
        )
