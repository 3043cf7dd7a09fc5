"""
Booking lifecycle engine.

The only code allowed to change ``Booking.status``. A transition is checked in
a fixed order (booking exists, caller is a party or an admin, the edge is legal
for the caller's role, a reason is given for cancellations, the provider's KYC
is approved for acceptance) and then written with a single conditional UPDATE
keyed on the status and version that were checked. If another request got
there first the UPDATE matches no row and the caller gets ``Conflict``.

After the write is committed the new row is published on the change feed and
the counterparty is notified. Neither side effect can fail the transition.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional, Tuple
from uuid import UUID
from sqlalchemy import update
from sqlalchemy.orm import Session
from handyhive.exceptions import (
    Conflict,
    InvalidTransition,
    KycNotApproved,
    NotFound,
    ReasonRequired,
    Unauthorized,
)
from handyhive.models.booking_model import Booking
from handyhive.schemas.booking_schema import TERMINAL_STATUSES, BookingStatus, PaymentMethod, PaymentStatus
from handyhive.security.actor import Actor
from handyhive.services.change_feed import ChangeFeed, booking_event, booking_feed
from handyhive.services.kyc_crud import KycGate, kyc_gate
from handyhive.services.notification_service import NotificationDispatcher, notification_dispatcher
from handyhive.logger import get_logger

logger = get_logger(__name__)

CUSTOMER = "customer"
PROVIDER = "provider"
ADMIN = "admin"

S = BookingStatus

# (from, to) -> roles allowed to take the edge
TRANSITIONS: Dict[Tuple[BookingStatus, BookingStatus], FrozenSet[str]] = {
    (S.requested, S.accepted): frozenset({PROVIDER}),
    (S.requested, S.cancelled): frozenset({PROVIDER, CUSTOMER, ADMIN}),
    (S.accepted, S.in_progress): frozenset({PROVIDER}),
    (S.accepted, S.cancelled): frozenset({ADMIN}),
    (S.in_progress, S.completed): frozenset({PROVIDER}),
    (S.in_progress, S.cancelled): frozenset({ADMIN}),
}

# Column stamped when a booking enters a state
STATE_TIMESTAMPS = {
    S.accepted: "accepted_at",
    S.in_progress: "started_at",
    S.completed: "completed_at",
    S.cancelled: "cancelled_at",
}


@dataclass(frozen=True)
class TransitionResult:
    booking: Booking
    previous_status: BookingStatus
    acted_as: str


def roles_on_booking(actor: Actor, booking) -> FrozenSet[str]:
    roles = set()
    if actor.user_id == str(booking.customer_id):
        roles.add(CUSTOMER)
    if actor.user_id == str(booking.provider_id):
        roles.add(PROVIDER)
    if actor.is_admin:
        roles.add(ADMIN)
    return frozenset(roles)


def available_transitions(actor: Actor, booking) -> List[BookingStatus]:
    """Targets the actor could request from the booking's current status"""
    roles = roles_on_booking(actor, booking)
    current = BookingStatus(booking.status)
    if current in TERMINAL_STATUSES:
        return []
    return [
        target for (source, target), allowed in TRANSITIONS.items()
        if source == current and roles & allowed
    ]


class BookingLifecycleEngine:
    def __init__(self, feed: ChangeFeed, notifier: NotificationDispatcher, gate: KycGate):
        self.feed = feed
        self.notifier = notifier
        self.gate = gate

    @staticmethod
    def _load_booking(db: Session, booking_id) -> Optional[Booking]:
        return (
            db.query(Booking)
            .populate_existing()
            .filter(Booking.id == str(booking_id))
            .first()
        )

    def transition(
            self,
            db: Session,
            booking_id: UUID,
            actor: Actor,
            target: BookingStatus,
            reason: Optional[str] = None,
    ) -> TransitionResult:
        target = BookingStatus(target)
        booking = self._load_booking(db, booking_id)
        if booking is None:
            raise NotFound("Booking not found")

        roles = roles_on_booking(actor, booking)
        if not roles:
            raise Unauthorized("Not authorized to change this booking")

        current = BookingStatus(booking.status)
        if current in TERMINAL_STATUSES:
            raise InvalidTransition(f"Booking {booking.booking_code} is already {current.value}")
        acted_as = self._role_for_edge(current, target, roles)
        if acted_as is None:
            raise InvalidTransition(
                f"Cannot move booking {booking.booking_code} from {current.value} to {target.value}"
            )

        reason = reason.strip() if reason else None
        if target == S.cancelled and not reason:
            raise ReasonRequired("A reason is required to cancel a booking")

        if target == S.accepted and not self.gate.is_approved(db, booking.provider_id):
            raise KycNotApproved("Complete KYC verification to accept bookings")

        self._compare_and_set(db, booking, current, target, acted_as, reason)

        updated = self._load_booking(db, booking_id)
        logger.info(
            f"Booking {updated.booking_code}: {current.value} -> {target.value} "
            f"by {acted_as} {actor.user_id} (v{updated.version})"
        )
        self._publish(updated)
        self._notify(db, updated, target, acted_as, reason)
        return TransitionResult(booking=updated, previous_status=current, acted_as=acted_as)

    @staticmethod
    def _role_for_edge(current: BookingStatus, target: BookingStatus, roles: FrozenSet[str]) -> Optional[str]:
        allowed = TRANSITIONS.get((current, target), frozenset())
        for role in (PROVIDER, CUSTOMER, ADMIN):
            if role in roles and role in allowed:
                return role
        return None

    def _compare_and_set(
            self,
            db: Session,
            booking: Booking,
            current: BookingStatus,
            target: BookingStatus,
            acted_as: str,
            reason: Optional[str],
    ) -> None:
        booking_id = str(booking.id)
        expected_version = booking.version
        now = datetime.now(timezone.utc)
        values = {
            "status": target.value,
            "version": expected_version + 1,
            "updated_at": now,
            STATE_TIMESTAMPS[target]: now,
        }
        if target == S.cancelled:
            values["notes"] = reason
            values["cancelled_by"] = acted_as
        if target == S.completed and booking.payment_method == PaymentMethod.cash.value:
            values["payment_status"] = PaymentStatus.paid.value

        conditions = [
            Booking.id == booking_id,
            Booking.status == current.value,
            Booking.version == expected_version,
        ]
        if target == S.accepted:
            # KYC is re-checked inside the same statement as the write
            conditions.append(self.gate.approved_clause(booking.provider_id))

        stmt = (
            update(Booking)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = db.execute(stmt)
            if result.rowcount == 1:
                db.commit()
                return
            db.rollback()
        except Exception as e:
            db.rollback()
            logger.error(f"Error writing transition for booking {booking_id}: {str(e)}")
            raise

        raise self._explain_lost_write(db, booking_id, expected_version, current, target)

    def _explain_lost_write(
            self, db: Session, booking_id: str, expected_version: int, expected: BookingStatus, target: BookingStatus
    ) -> Exception:
        latest = self._load_booking(db, booking_id)
        if latest is None:
            return NotFound("Booking not found")
        if latest.status != expected.value or latest.version != expected_version:
            logger.info(
                f"Lost transition race on booking {latest.booking_code}: "
                f"wanted {target.value}, now {latest.status} (v{latest.version})"
            )
            return Conflict(
                f"Booking {latest.booking_code} was updated by someone else and is now {latest.status}"
            )
        if target == S.accepted:
            return KycNotApproved("Complete KYC verification to accept bookings")
        return Conflict(f"Booking {latest.booking_code} could not be updated, please retry")

    def _publish(self, booking: Booking) -> None:
        try:
            self.feed.publish(booking_event(booking, "updated"))
        except Exception as e:
            logger.error(f"Error publishing change for booking {booking.id}: {str(e)}")

    def _notify(self, db: Session, booking: Booking, target: BookingStatus, acted_as: str, reason: Optional[str]):
        try:
            for user_id, title, body, category, link in self._messages(booking, target, acted_as, reason):
                self.notifier.notify(db, user_id, title, body, category, link)
        except Exception as e:
            logger.error(f"Error notifying parties of booking {booking.id}: {str(e)}")

    @staticmethod
    def _messages(booking: Booking, target: BookingStatus, acted_as: str, reason: Optional[str]):
        service = booking.service_category
        when = booking.scheduled_date.strftime("%b %d")
        detail_link = f"/booking/{booking.id}"

        if target == S.accepted:
            yield (booking.customer_id, "Booking Accepted",
                   f"Your {service} booking for {when} has been accepted.", "booking", detail_link)
        elif target == S.in_progress:
            yield (booking.customer_id, "Service Started",
                   f"Your {service} service is now in progress.", "booking", detail_link)
        elif target == S.completed:
            yield (booking.customer_id, "Service Completed",
                   f"Your {service} service is complete. Please leave a review!", "review",
                   f"/review/{booking.id}")
        elif acted_as == PROVIDER:
            yield (booking.customer_id, "Booking Declined",
                   f"Your {service} booking was declined. Reason: {reason}", "warning", "/bookings")
        elif acted_as == CUSTOMER:
            yield (booking.provider_id, "Booking Cancelled",
                   f"Booking {booking.booking_code} for {when} was cancelled by the customer. Reason: {reason}",
                   "warning", "/provider/jobs")
        else:
            for user_id in (booking.customer_id, booking.provider_id):
                yield (user_id, "Booking Cancelled by Support",
                       f"Booking {booking.booking_code} was cancelled. Reason: {reason}", "warning", detail_link)


lifecycle_engine = BookingLifecycleEngine(feed=booking_feed, notifier=notification_dispatcher, gate=kyc_gate)


def get_lifecycle_engine() -> BookingLifecycleEngine:
    return lifecycle_engine
