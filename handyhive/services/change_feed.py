"""
In-process publish/subscribe channel for row changes.

Events are typed and keyed by entity id. Every booking event carries the
row's ``version`` so subscribers can drop duplicates and detect gaps.
Delivery is at-least-once; a subscriber that sees a gap (or reconnects) must
re-read the full state instead of trusting the event stream.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from handyhive.logger import get_logger

logger = get_logger(__name__)

BOOKINGS_TABLE = "bookings"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    entity_id: str
    version: int
    event_type: str  # "created" | "updated"
    payload: Dict[str, Any] = field(default_factory=dict)

    def as_message(self) -> dict:
        return {
            "type": "change",
            "table": self.table,
            "entity_id": self.entity_id,
            "version": self.version,
            "event_type": self.event_type,
            "payload": self.payload,
        }


EventFilter = Callable[[ChangeEvent], bool]
EventHandler = Callable[[ChangeEvent], None]


class Subscription:
    def __init__(self, feed: "ChangeFeed", table: str, event_filter: Optional[EventFilter], on_change: EventHandler):
        self._feed = feed
        self.table = table
        self.event_filter = event_filter
        self.on_change = on_change
        self.active = True

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table:
            return False
        return self.event_filter is None or self.event_filter(event)

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._feed._remove(self)


class ChangeFeed:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscriptions: List[Subscription] = []

    def subscribe(self, table: str, event_filter: Optional[EventFilter], on_change: EventHandler) -> Subscription:
        subscription = Subscription(self, table, event_filter, on_change)
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug(f"Subscribed to {table} changes ({len(self._subscriptions)} active)")
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, event: ChangeEvent) -> int:
        """Deliver ``event`` to every matching subscriber; returns how many received it"""
        with self._lock:
            targets = [s for s in self._subscriptions if s.active]

        delivered = 0
        for subscription in targets:
            try:
                if not subscription.matches(event):
                    continue
                subscription.on_change(event)
                delivered += 1
            except Exception as e:
                logger.error(f"Subscriber failed on {event.table}/{event.entity_id} v{event.version}: {str(e)}")
        return delivered


def booking_payload(booking) -> dict:
    """JSON-safe snapshot of a booking row for the feed"""
    from handyhive.schemas.booking_schema import BookingResponse

    return BookingResponse.model_validate(booking).model_dump(mode="json")


def booking_event(booking, event_type: str) -> ChangeEvent:
    return ChangeEvent(
        table=BOOKINGS_TABLE,
        entity_id=str(booking.id),
        version=booking.version,
        event_type=event_type,
        payload=booking_payload(booking),
    )


def party_filter(user_id: str) -> EventFilter:
    """Only bookings where ``user_id`` is the customer or the provider"""
    user_id = str(user_id)

    def _filter(event: ChangeEvent) -> bool:
        return user_id in (event.payload.get("customer_id"), event.payload.get("provider_id"))

    return _filter


class LiveBookingView:
    """Client-side mirror of a set of bookings, kept current by patches.

    ``loader`` returns the full list of booking payloads the view should hold;
    it is called on start, on ``reconnect()`` and whenever a version gap shows
    that events were missed.
    """

    def __init__(self, loader: Callable[[], Iterable[dict]]):
        self._loader = loader
        self.bookings: Dict[str, dict] = {}
        self.full_reads = 0
        self.resync()

    def resync(self) -> None:
        self.bookings = {str(b["id"]): b for b in self._loader()}
        self.full_reads += 1

    def reconnect(self) -> None:
        self.resync()

    def apply(self, event: ChangeEvent) -> bool:
        """Apply one event; returns True if the view changed"""
        if event.table != BOOKINGS_TABLE:
            return False

        current = self.bookings.get(event.entity_id)
        if current is not None:
            known = current["version"]
            if event.version <= known:
                # duplicate or out-of-date delivery
                return False
            if event.version > known + 1:
                logger.info(f"Gap on booking {event.entity_id}: have v{known}, got v{event.version}; resyncing")
                self.resync()
                return True

        # payloads are full rows, so an unseen booking can be taken as-is
        self.bookings[event.entity_id] = dict(event.payload)
        return True

    def status_of(self, booking_id: str) -> Optional[str]:
        booking = self.bookings.get(str(booking_id))
        return booking["status"] if booking else None


booking_feed = ChangeFeed()
