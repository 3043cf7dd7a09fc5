"""
Review heuristics for the admin fraud queue.

Flags candidates for a human to look at; it never acts on them and false
positives are expected.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List

REPEAT_REVIEWER_THRESHOLD = 3
UNIFORM_RATING_THRESHOLD = 2


@dataclass(frozen=True)
class SuspiciousReviewFlag:
    review: object
    customer_review_count: int
    reason: str


def _reason(ratings: List[int]) -> str:
    if len(ratings) >= REPEAT_REVIEWER_THRESHOLD:
        return f"customer has written {len(ratings)} reviews"
    if len(ratings) >= UNIFORM_RATING_THRESHOLD and len(set(ratings)) == 1:
        return f"customer gave {len(ratings)} reviews all rated {ratings[0]}"
    return ""


def find_suspicious_reviews(reviews: Iterable) -> List[SuspiciousReviewFlag]:
    """Flag every review by a customer with 3+ reviews, or 2+ reviews sharing one rating"""
    reviews = list(reviews)
    ratings_by_customer: Dict[str, List[int]] = defaultdict(list)
    for review in reviews:
        ratings_by_customer[str(review.customer_id)].append(review.rating)

    flags = []
    for review in reviews:
        ratings = ratings_by_customer[str(review.customer_id)]
        reason = _reason(ratings)
        if reason:
            flags.append(SuspiciousReviewFlag(review, len(ratings), reason))
    return flags
