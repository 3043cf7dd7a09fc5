from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from uuid import UUID
from typing import List, Optional
from datetime import datetime
from enum import Enum
from handyhive.exceptions import BookingError
from handyhive.services.booking_crud import booking_crud
from handyhive.services.booking_lifecycle import BookingLifecycleEngine, available_transitions, get_lifecycle_engine
from handyhive.services.earnings import booking_stats
from handyhive.schemas.booking_schema import (
    BookingCreate,
    BookingResponse,
    BookingStats,
    BookingStatus,
    PaymentStatus,
    ReasonRequest,
    TransitionRequest,
)
from handyhive.database import get_db
from handyhive.security.actor import Actor
from handyhive.security.auth import get_current_active_user, get_current_admin_user, get_current_actor
from handyhive.models.user_model import User
from handyhive.logger import get_logger

booking_router = APIRouter()
logger = get_logger(__name__)


class BookingRole(str, Enum):
    customer = "customer"
    provider = "provider"


def _transition(
    db: Session,
    engine: BookingLifecycleEngine,
    booking_id: UUID,
    actor: Actor,
    target: BookingStatus,
    reason: Optional[str] = None,
) -> BookingResponse:
    try:
        logger.info(f"User {actor.user_id} requesting {target.value} on booking {booking_id}")
        result = engine.transition(db, booking_id, actor, target, reason)
        return BookingResponse.model_validate(result.booking)

    except (HTTPException, BookingError):
        raise
    except Exception as e:
        logger.error(f"Error changing booking {booking_id} to {target.value}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while updating booking, please try again",
        )


# CUSTOMER & PROVIDER ENDPOINTS


@booking_router.post(
    "/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED
)
def create_booking(
    booking: BookingCreate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Request a service from a provider (customer creates)"""
    try:
        logger.info(
            f"User {current_user.email} booking provider {booking.provider_id} for {booking.service_category}"
        )
        db_booking = booking_crud.create_booking(db, booking, current_user)
        return BookingResponse.model_validate(db_booking)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating booking: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while creating booking",
        )


@booking_router.get(
    "/bookings", response_model=List[BookingResponse], status_code=status.HTTP_200_OK
)
def get_my_bookings(
    role: BookingRole = Query(BookingRole.customer, description="List bookings as customer or provider"),
    booking_status: Optional[List[BookingStatus]] = Query(None, description="Filter by booking status"),
    skip: int = Query(0, ge=0, description="Number of bookings to skip"),
    limit: int = Query(20, ge=1, le=100, description="Number of bookings to retrieve"),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Get the current user's bookings, as a customer or as a provider"""
    if role == BookingRole.provider and not current_user.is_provider:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Provider access required"
        )
    try:
        logger.info(f"User {current_user.email} fetching bookings as {role.value}")
        bookings = booking_crud.get_bookings(
            db=db,
            skip=skip,
            limit=limit,
            customer_id=current_user.id if role == BookingRole.customer else None,
            provider_id=current_user.id if role == BookingRole.provider else None,
            statuses=booking_status,
        )
        return [BookingResponse.model_validate(booking) for booking in bookings]

    except Exception as e:
        logger.error(f"Error fetching user bookings: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching bookings",
        )


@booking_router.get(
    "/bookings/stats", response_model=BookingStats, status_code=status.HTTP_200_OK
)
def get_my_booking_stats(
    role: BookingRole = Query(BookingRole.customer),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Dashboard counters: total, ongoing, completed, cancelled and completed amount"""
    try:
        bookings = booking_crud.get_all_for_party(db, current_user.id, as_provider=role == BookingRole.provider)
        summary = booking_stats(bookings)
        return BookingStats(**summary.__dict__)

    except Exception as e:
        logger.error(f"Error computing booking stats: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching booking stats",
        )


@booking_router.get(
    "/bookings/{booking_id}",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
def get_booking(
    booking_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Get booking by ID (customer, provider or admin)"""
    booking = booking_crud.get_booking_for_actor(db, booking_id, actor)
    return BookingResponse.model_validate(booking)


@booking_router.get(
    "/bookings/{booking_id}/transitions",
    response_model=List[BookingStatus],
    status_code=status.HTTP_200_OK,
)
def get_booking_transitions(
    booking_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """States the caller may move this booking to right now"""
    booking = booking_crud.get_booking_for_actor(db, booking_id, actor)
    return available_transitions(actor, booking)


@booking_router.post(
    "/bookings/{booking_id}/transition",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
def transition_booking(
    booking_id: UUID,
    request: TransitionRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    engine: BookingLifecycleEngine = Depends(get_lifecycle_engine),
):
    """Move a booking to another state"""
    return _transition(db, engine, booking_id, actor, request.target_status, request.reason)


@booking_router.post("/bookings/{booking_id}/accept", response_model=BookingResponse)
def accept_booking(
    booking_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    engine: BookingLifecycleEngine = Depends(get_lifecycle_engine),
):
    """Provider accepts a requested booking (requires approved KYC)"""
    return _transition(db, engine, booking_id, actor, BookingStatus.accepted)


@booking_router.post("/bookings/{booking_id}/reject", response_model=BookingResponse)
def reject_booking(
    booking_id: UUID,
    request: ReasonRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    engine: BookingLifecycleEngine = Depends(get_lifecycle_engine),
):
    """Provider declines a requested booking"""
    return _transition(db, engine, booking_id, actor, BookingStatus.cancelled, request.reason)


@booking_router.post("/bookings/{booking_id}/start", response_model=BookingResponse)
def start_booking(
    booking_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    engine: BookingLifecycleEngine = Depends(get_lifecycle_engine),
):
    return _transition(db, engine, booking_id, actor, BookingStatus.in_progress)


@booking_router.post("/bookings/{booking_id}/complete", response_model=BookingResponse)
def complete_booking(
    booking_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    engine: BookingLifecycleEngine = Depends(get_lifecycle_engine),
):
    """Provider finishes the job; cash bookings are marked paid"""
    return _transition(db, engine, booking_id, actor, BookingStatus.completed)


@booking_router.post("/bookings/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(
    booking_id: UUID,
    request: ReasonRequest,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    engine: BookingLifecycleEngine = Depends(get_lifecycle_engine),
):
    """Cancel a booking; customers and providers only while requested, admins any time before it ends"""
    return _transition(db, engine, booking_id, actor, BookingStatus.cancelled, request.reason)


# ADMIN ENDPOINTS


@booking_router.get(
    "/admin/bookings",
    response_model=List[BookingResponse],
    status_code=status.HTTP_200_OK,
)
def get_all_bookings(
    skip: int = Query(0, ge=0, description="Number of bookings to skip"),
    limit: int = Query(100, ge=1, le=100, description="Number of bookings to retrieve"),
    customer_id: Optional[UUID] = Query(None, description="Filter by customer ID"),
    provider_id: Optional[UUID] = Query(None, description="Filter by provider ID"),
    booking_status: Optional[List[BookingStatus]] = Query(None, description="Filter by booking status"),
    payment_status: Optional[PaymentStatus] = Query(None, description="Filter by payment status"),
    from_date: Optional[datetime] = Query(None, description="Filter bookings created from this date"),
    to_date: Optional[datetime] = Query(None, description="Filter bookings created up to this date"),
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Get all bookings with filtering (admin only)"""
    try:
        logger.info(f"Admin {current_user.email} fetching all bookings")
        bookings = booking_crud.get_bookings(
            db=db,
            skip=skip,
            limit=limit,
            customer_id=customer_id,
            provider_id=provider_id,
            statuses=booking_status,
            payment_status=payment_status.value if payment_status else None,
            from_date=from_date,
            to_date=to_date,
        )
        return [BookingResponse.model_validate(booking) for booking in bookings]

    except Exception as e:
        logger.error(f"Error fetching all bookings: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching bookings",
        )
