from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from uuid import UUID
from typing import List, Optional
from handyhive.services.review_crud import review_crud
from handyhive.services.fraud_monitor import find_suspicious_reviews
from handyhive.schemas.review_schema import ReviewCreate, ReviewResponse, SuspiciousReview
from handyhive.database import get_db
from handyhive.security.auth import get_current_active_user, get_current_admin_user
from handyhive.models.user_model import User
from handyhive.logger import get_logger

review_router = APIRouter()
logger = get_logger(__name__)

# CUSTOMER ENDPOINTS


@review_router.post(
    "/reviews", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED
)
def create_review(
    review: ReviewCreate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Review a completed booking (one review per booking, by its customer)"""
    try:
        logger.info(
            f"User {current_user.email} creating review for booking {review.booking_id}"
        )
        db_review = review_crud.create_review(db, review, current_user.id)
        return ReviewResponse.model_validate(db_review)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating review: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while creating review",
        )


@review_router.get(
    "/reviews/{review_id}",
    response_model=ReviewResponse,
    status_code=status.HTTP_200_OK,
)
def get_review(
    review_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Get review by ID"""
    review = review_crud.get_review_by_id(db, review_id)
    if not review:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Review not found"
        )
    return ReviewResponse.model_validate(review)


@review_router.get(
    "/users/me/reviews",
    response_model=List[ReviewResponse],
    status_code=status.HTTP_200_OK,
)
def get_my_reviews(
    skip: int = Query(0, ge=0, description="Number of reviews to skip"),
    limit: int = Query(100, ge=1, le=100, description="Number of reviews to retrieve"),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Reviews written by the current user, or received if they are a provider"""
    try:
        if current_user.is_provider:
            reviews = review_crud.get_reviews(db, skip=skip, limit=limit, provider_id=current_user.id)
        else:
            reviews = review_crud.get_reviews(db, skip=skip, limit=limit, customer_id=current_user.id)
        return [ReviewResponse.model_validate(review) for review in reviews]

    except Exception as e:
        logger.error(f"Error fetching user reviews: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching user reviews",
        )


# PUBLIC ENDPOINTS


@review_router.get(
    "/providers/{provider_id}/reviews",
    response_model=List[ReviewResponse],
    status_code=status.HTTP_200_OK,
)
def get_provider_reviews(
    provider_id: UUID,
    skip: int = Query(0, ge=0, description="Number of reviews to skip"),
    limit: int = Query(100, ge=1, le=100, description="Number of reviews to retrieve"),
    min_rating: Optional[int] = Query(None, ge=1, le=5, description="Minimum rating filter"),
    max_rating: Optional[int] = Query(None, ge=1, le=5, description="Maximum rating filter"),
    db: Session = Depends(get_db),
):
    """Reviews a provider has received (public endpoint)"""
    try:
        reviews = review_crud.get_reviews(
            db, skip=skip, limit=limit, provider_id=provider_id,
            min_rating=min_rating, max_rating=max_rating,
        )
        return [ReviewResponse.model_validate(review) for review in reviews]

    except Exception as e:
        logger.error(f"Error fetching provider reviews: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching provider reviews",
        )


@review_router.get(
    "/bookings/{booking_id}/review",
    response_model=ReviewResponse,
    status_code=status.HTTP_200_OK,
)
def get_booking_review(
    booking_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
):
    """Get review for a specific booking"""
    review = review_crud.get_review_by_booking(db, booking_id)
    if not review:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Review not found for this booking",
        )
    return ReviewResponse.model_validate(review)


# ADMIN ENDPOINTS


@review_router.get(
    "/admin/reviews",
    response_model=List[ReviewResponse],
    status_code=status.HTTP_200_OK,
)
def get_all_reviews(
    skip: int = Query(0, ge=0, description="Number of reviews to skip"),
    limit: int = Query(100, ge=1, le=100, description="Number of reviews to retrieve"),
    customer_id: Optional[UUID] = Query(None, description="Filter by customer ID"),
    provider_id: Optional[UUID] = Query(None, description="Filter by provider ID"),
    min_rating: Optional[int] = Query(None, ge=1, le=5, description="Minimum rating filter"),
    max_rating: Optional[int] = Query(None, ge=1, le=5, description="Maximum rating filter"),
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Get all reviews with filtering (admin only)"""
    try:
        logger.info(f"Admin {current_user.email} fetching all reviews")
        reviews = review_crud.get_reviews(
            db=db,
            skip=skip,
            limit=limit,
            customer_id=customer_id,
            provider_id=provider_id,
            min_rating=min_rating,
            max_rating=max_rating,
        )
        return [ReviewResponse.model_validate(review) for review in reviews]

    except Exception as e:
        logger.error(f"Error fetching all reviews: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching reviews",
        )


@review_router.get(
    "/admin/reviews/suspicious",
    response_model=List[SuspiciousReview],
    status_code=status.HTTP_200_OK,
)
def get_suspicious_reviews(
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Reviews worth a human look: prolific reviewers and uniform ratings (admin only)"""
    try:
        flags = find_suspicious_reviews(review_crud.get_all_reviews(db))
        logger.info(f"Admin {current_user.email} fetched {len(flags)} suspicious reviews")
        return [
            SuspiciousReview(
                **ReviewResponse.model_validate(flag.review).model_dump(),
                customer_review_count=flag.customer_review_count,
                reason=flag.reason,
            )
            for flag in flags
        ]

    except Exception as e:
        logger.error(f"Error computing suspicious reviews: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching suspicious reviews",
        )
