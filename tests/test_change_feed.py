import pytest
from starlette.websockets import WebSocketDisconnect

from conftest import auth_headers, make_booking
from handyhive.security.auth import create_access_token
from handyhive.services.change_feed import ChangeEvent, ChangeFeed, LiveBookingView, party_filter


def event(entity_id, version, status="accepted", table="bookings", **payload):
    body = {"id": entity_id, "version": version, "status": status}
    body.update(payload)
    return ChangeEvent(table=table, entity_id=entity_id, version=version, event_type="updated", payload=body)


def test_publish_reaches_matching_subscribers_only():
    feed = ChangeFeed()
    everything, mine, other_table = [], [], []
    feed.subscribe("bookings", None, everything.append)
    feed.subscribe("bookings", party_filter("u1"), mine.append)
    feed.subscribe("reviews", None, other_table.append)

    assert feed.publish(event("b1", 2, customer_id="u1", provider_id="p1")) == 2
    assert feed.publish(event("b2", 2, customer_id="u2", provider_id="p2")) == 1
    assert [e.entity_id for e in everything] == ["b1", "b2"]
    assert [e.entity_id for e in mine] == ["b1"]
    assert other_table == []


def test_unsubscribe_stops_delivery():
    feed = ChangeFeed()
    received = []
    subscription = feed.subscribe("bookings", None, received.append)
    subscription.unsubscribe()
    subscription.unsubscribe()
    assert feed.subscriber_count() == 0
    assert feed.publish(event("b1", 2)) == 0
    assert received == []


def test_failing_subscriber_does_not_block_others():
    feed = ChangeFeed()
    received = []

    def broken(_event):
        raise RuntimeError("socket closed")

    feed.subscribe("bookings", None, broken)
    feed.subscribe("bookings", None, received.append)
    assert feed.publish(event("b1", 2)) == 1
    assert len(received) == 1


def test_event_message_shape():
    message = event("b1", 3, status="in_progress").as_message()
    assert message["type"] == "change"
    assert message["entity_id"] == "b1"
    assert message["version"] == 3
    assert message["payload"]["status"] == "in_progress"


class Store:
    def __init__(self, *rows):
        self.rows = list(rows)
        self.reads = 0

    def load(self):
        self.reads += 1
        return [dict(r) for r in self.rows]


def test_live_view_applies_next_version():
    store = Store({"id": "b1", "version": 1, "status": "requested"})
    view = LiveBookingView(store.load)
    assert view.apply(event("b1", 2, status="accepted")) is True
    assert view.status_of("b1") == "accepted"
    assert store.reads == 1


def test_live_view_drops_duplicates_and_stale_events():
    store = Store({"id": "b1", "version": 2, "status": "accepted"})
    view = LiveBookingView(store.load)
    assert view.apply(event("b1", 2, status="accepted")) is False
    assert view.apply(event("b1", 1, status="requested")) is False
    assert view.status_of("b1") == "accepted"


def test_live_view_resyncs_on_gap():
    store = Store({"id": "b1", "version": 1, "status": "requested"})
    view = LiveBookingView(store.load)
    store.rows = [{"id": "b1", "version": 3, "status": "in_progress"}]

    assert view.apply(event("b1", 3, status="in_progress")) is True
    assert store.reads == 2
    assert view.bookings["b1"]["version"] == 3


def test_live_view_reconnect_rereads_everything():
    store = Store({"id": "b1", "version": 1, "status": "requested"})
    view = LiveBookingView(store.load)
    store.rows.append({"id": "b2", "version": 1, "status": "requested"})
    view.reconnect()
    assert set(view.bookings) == {"b1", "b2"}
    assert view.full_reads == 2


def test_live_view_adds_unseen_bookings():
    view = LiveBookingView(Store().load)
    assert view.apply(event("b9", 1, status="requested")) is True
    assert view.status_of("b9") == "requested"
    assert view.status_of("missing") is None


def test_live_view_ignores_other_tables():
    view = LiveBookingView(Store().load)
    assert view.apply(event("r1", 1, table="reviews")) is False


def test_websocket_sends_snapshot_then_changes(client, db, customer, provider):
    booking = make_booking(db, customer, provider)
    token, _ = create_access_token(data={"sub": str(customer.id)})

    with client.websocket_connect(f"/ws/bookings?token={token}") as ws:
        snapshot = ws.receive_json()
        assert snapshot["type"] == "snapshot"
        assert [b["id"] for b in snapshot["bookings"]] == [str(booking.id)]

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}

        client.post(f"/api/bookings/{booking.id}/accept", headers=auth_headers(provider))
        change = ws.receive_json()
        assert change["type"] == "change"
        assert change["entity_id"] == str(booking.id)
        assert change["version"] == 2
        assert change["payload"]["status"] == "accepted"

        ws.send_json({"type": "resync"})
        again = ws.receive_json()
        assert again["type"] == "snapshot"
        assert again["bookings"][0]["version"] == 2


def test_websocket_rejects_bad_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/bookings?token=not-a-token") as ws:
            ws.receive_json()


def test_websocket_requires_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/bookings") as ws:
            ws.receive_json()
