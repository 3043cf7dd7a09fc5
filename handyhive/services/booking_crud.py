import secrets
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional, Sequence
from uuid import UUID
from datetime import date, datetime, timezone
from handyhive.exceptions import NotFound, Unauthorized
from handyhive.models.booking_model import Booking
from handyhive.models.user_model import User
from handyhive.schemas.booking_schema import BookingCreate, BookingStatus, PaymentStatus
from handyhive.security.actor import Actor
from handyhive.services.change_feed import ChangeFeed, booking_event, booking_feed
from handyhive.services.notification_service import NotificationDispatcher, notification_dispatcher
from handyhive.services.pricing import quote_booking
from handyhive.services.skill_crud import skill_crud
from handyhive.logger import get_logger

logger = get_logger(__name__)

CODE_ATTEMPTS = 5


def generate_booking_code(today: Optional[date] = None) -> str:
    """Human-readable booking reference, e.g. HH250114A3F09C"""
    today = today or datetime.now(timezone.utc).date()
    return f"HH{today:%y%m%d}{secrets.token_hex(3).upper()}"


class BookingCRUD:
    def __init__(self, feed: ChangeFeed, notifier: NotificationDispatcher):
        self.feed = feed
        self.notifier = notifier

    def create_booking(self, db: Session, booking: BookingCreate, customer: User) -> Booking:
        """Create a service request in the requested state, priced once here"""
        provider_id_str = str(booking.provider_id)
        customer_id_str = str(customer.id)

        if provider_id_str == customer_id_str:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="You cannot book yourself",
            )

        provider = (
            db.query(User)
            .filter(User.id == provider_id_str, User.is_provider == True, User.is_active == True)
            .first()
        )
        if not provider:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Provider not found or is inactive",
            )

        if not skill_crud.offers(db, provider_id_str, booking.service_category):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Provider does not offer {booking.service_category} services",
            )

        if BookingCRUD._has_slot_conflict(db, provider_id_str, booking.scheduled_date, booking.scheduled_time):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Time slot is already booked for this provider",
            )

        try:
            quote = quote_booking(booking.service_category, booking.is_emergency)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

        db_booking = None
        for attempt in range(CODE_ATTEMPTS):
            try:
                db_booking = Booking(
                    booking_code=generate_booking_code(),
                    customer_id=customer_id_str,
                    provider_id=provider_id_str,
                    service_category=booking.service_category,
                    scheduled_date=booking.scheduled_date,
                    scheduled_time=booking.scheduled_time,
                    status=BookingStatus.requested.value,
                    payment_method=booking.payment_method.value,
                    payment_status=PaymentStatus.pending.value,
                    subtotal=quote.subtotal,
                    visit_charge=quote.visit_charge,
                    tax=quote.tax,
                    total_amount=quote.total,
                    customer_address=booking.customer_address,
                    notes=booking.notes,
                    version=1,
                )
                db.add(db_booking)
                db.commit()
                db.refresh(db_booking)
                break
            except IntegrityError as e:
                db.rollback()
                logger.warning(f"Booking code collision (attempt {attempt + 1}): {str(e)}")
                db_booking = None
            except Exception as e:
                db.rollback()
                logger.error(f"Error creating booking: {str(e)}")
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail="Error occurred while creating booking",
                )

        if db_booking is None:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error occurred while creating booking",
            )

        logger.info(f"Booking created: {db_booking.booking_code} by customer {customer_id_str}")
        try:
            self.feed.publish(booking_event(db_booking, "created"))
        except Exception as e:
            logger.error(f"Error publishing new booking {db_booking.id}: {str(e)}")
        self.notifier.notify(
            db, provider_id_str, "New Booking Request",
            f"New {db_booking.service_category} request for {db_booking.scheduled_date:%b %d} "
            f"at {db_booking.scheduled_time}.",
            "booking", "/provider/jobs",
        )
        return db_booking

    @staticmethod
    def _has_slot_conflict(db: Session, provider_id: str, scheduled_date: date, scheduled_time: str) -> bool:
        """A provider holds at most one live booking per date and slot"""
        return db.query(Booking).filter(
            Booking.provider_id == provider_id,
            Booking.scheduled_date == scheduled_date,
            Booking.scheduled_time == scheduled_time,
            Booking.status != BookingStatus.cancelled.value,
        ).first() is not None

    @staticmethod
    def get_booking_by_id(db: Session, booking_id: UUID) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == str(booking_id)).first()

    @staticmethod
    def get_booking_for_actor(db: Session, booking_id: UUID, actor: Actor) -> Booking:
        """Fetch a booking the actor is a party to (admins see everything)"""
        booking = BookingCRUD.get_booking_by_id(db, booking_id)
        if not booking:
            raise NotFound("Booking not found")
        if not actor.is_admin and actor.user_id not in (str(booking.customer_id), str(booking.provider_id)):
            raise Unauthorized("Not authorized to access this booking")
        return booking

    @staticmethod
    def get_bookings(
            db: Session,
            skip: int = 0,
            limit: int = 100,
            customer_id: Optional[UUID] = None,
            provider_id: Optional[UUID] = None,
            statuses: Optional[Sequence[str]] = None,
            payment_status: Optional[str] = None,
            from_date: Optional[datetime] = None,
            to_date: Optional[datetime] = None,
    ) -> List[Booking]:
        """Get bookings with optional filtering, newest first"""
        query = db.query(Booking)

        if customer_id:
            query = query.filter(Booking.customer_id == str(customer_id))
        if provider_id:
            query = query.filter(Booking.provider_id == str(provider_id))
        if statuses:
            query = query.filter(Booking.status.in_([str(getattr(s, "value", s)) for s in statuses]))
        if payment_status:
            query = query.filter(Booking.payment_status == payment_status)

        # Date range applies to when the booking was made
        if from_date:
            query = query.filter(Booking.created_at >= from_date)
        if to_date:
            query = query.filter(Booking.created_at <= to_date)

        return query.order_by(Booking.created_at.desc()).offset(skip).limit(limit).all()

    @staticmethod
    def get_all_for_party(db: Session, user_id: UUID, as_provider: bool) -> List[Booking]:
        """Every booking of a customer or provider, unpaginated (for aggregates)"""
        column = Booking.provider_id if as_provider else Booking.customer_id
        return db.query(Booking).filter(column == str(user_id)).all()

    @staticmethod
    def get_visible_to(db: Session, actor: Actor, limit: int = 200) -> List[Booking]:
        """Bookings a live view should hold for this actor"""
        query = db.query(Booking)
        if not actor.is_admin:
            query = query.filter(
                (Booking.customer_id == actor.user_id) | (Booking.provider_id == actor.user_id)
            )
        return query.order_by(Booking.created_at.desc()).limit(limit).all()


booking_crud = BookingCRUD(feed=booking_feed, notifier=notification_dispatcher)
