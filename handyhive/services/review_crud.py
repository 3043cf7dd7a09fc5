from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import List, Optional
from uuid import UUID
from decimal import Decimal, ROUND_HALF_UP
from handyhive.models.review_model import Review
from handyhive.models.booking_model import Booking
from handyhive.models.user_model import User
from handyhive.schemas.booking_schema import BookingStatus
from handyhive.schemas.review_schema import ReviewCreate
from handyhive.logger import get_logger

logger = get_logger(__name__)


class ReviewCRUD:
    @staticmethod
    def create_review(db: Session, review: ReviewCreate, customer_id: UUID) -> Review:
        """Create the single, immutable review for a completed booking"""
        booking_id_str = str(review.booking_id)
        customer_id_str = str(customer_id)

        # Verify booking exists and belongs to the customer
        booking = db.query(Booking).filter(
            Booking.id == booking_id_str,
            Booking.customer_id == customer_id_str
        ).first()

        if not booking:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Booking not found or does not belong to you"
            )

        if booking.status != BookingStatus.completed.value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Can only review completed bookings"
            )

        if db.query(Review).filter(Review.booking_id == booking_id_str).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A review already exists for this booking"
            )

        try:
            db_review = Review(
                booking_id=booking_id_str,
                customer_id=customer_id_str,
                provider_id=booking.provider_id,
                rating=review.rating,
                comment=review.comment
            )
            db.add(db_review)
            db.flush()
            ReviewCRUD._refresh_provider_rating(db, booking.provider_id)
            db.commit()
            db.refresh(db_review)
            logger.info(f"Review created: {db_review.id} for booking {booking_id_str}")
            return db_review

        except IntegrityError:
            # lost a race with another submission for the same booking
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A review already exists for this booking"
            )
        except Exception as e:
            db.rollback()
            logger.error(f"Error creating review: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error occurred while creating review"
            )

    @staticmethod
    def _refresh_provider_rating(db: Session, provider_id: str) -> None:
        stats = db.query(
            func.count(Review.id).label('total_reviews'),
            func.avg(Review.rating).label('average_rating'),
        ).filter(Review.provider_id == provider_id).first()

        provider = db.query(User).filter(User.id == provider_id).first()
        if provider is None:
            return
        provider.total_reviews = stats.total_reviews or 0
        provider.average_rating = (
            Decimal(str(stats.average_rating)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
            if stats.average_rating is not None else None
        )

    @staticmethod
    def get_review_by_id(db: Session, review_id: UUID) -> Optional[Review]:
        return db.query(Review).filter(Review.id == str(review_id)).first()

    @staticmethod
    def get_review_by_booking(db: Session, booking_id: UUID) -> Optional[Review]:
        return db.query(Review).filter(Review.booking_id == str(booking_id)).first()

    @staticmethod
    def get_reviews(
            db: Session,
            skip: int = 0,
            limit: int = 100,
            customer_id: Optional[UUID] = None,
            provider_id: Optional[UUID] = None,
            min_rating: Optional[int] = None,
            max_rating: Optional[int] = None
    ) -> List[Review]:
        """Get reviews with optional filtering"""
        query = db.query(Review)

        if customer_id is not None:
            query = query.filter(Review.customer_id == str(customer_id))
        if provider_id is not None:
            query = query.filter(Review.provider_id == str(provider_id))
        if min_rating is not None:
            query = query.filter(Review.rating >= min_rating)
        if max_rating is not None:
            query = query.filter(Review.rating <= max_rating)

        return query.order_by(Review.created_at.desc()).offset(skip).limit(limit).all()

    @staticmethod
    def get_all_reviews(db: Session) -> List[Review]:
        return db.query(Review).order_by(Review.created_at.desc()).all()


review_crud = ReviewCRUD()
