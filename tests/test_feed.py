"""
Tests for the feed wire format, the broker and the board-side client.
"""

import socket
import threading

import pytest

from lanes.feed import protocol
from lanes.feed.broker import STALE_AFTER, FeedBroker
from lanes.feed.client import FAILED_TEXT, LOST_TEXT, FeedClient
from lanes.tui.messages import (
    ConnectionEstablishedMsg,
    ConnectionLostMsg,
    ConnectionReconnectingMsg,
    NotificationMsg,
    RefreshMsg,
)


# --- protocol ---


def test_decode_rejects_garbage():
    with pytest.raises(protocol.ProtocolError):
        protocol.decode(b"not json\n")
    with pytest.raises(protocol.ProtocolError):
        protocol.decode(b'{"type": "shout"}\n')
    with pytest.raises(protocol.ProtocolError):
        protocol.decode(b"[1, 2]\n")


def test_event_message_shape():
    event = protocol.Event(project_id=3, sequence_id=7, timestamp="t")
    line = protocol.encode(protocol.event_message(event))
    assert line.endswith(b"\n")
    message = protocol.decode(line)
    assert message["event"] == {"type": "db_changed", "project_id": 3, "sequence_id": 7, "timestamp": "t"}
    assert protocol.event_from_message(message) == event
    assert protocol.event_from_message(protocol.ping_message()) is None


def test_event_without_payload_is_an_error():
    with pytest.raises(protocol.ProtocolError):
        protocol.event_from_message({"type": "event"})


# --- broker ---


class FakeRequest:
    def __init__(self, broken=False):
        self.sent = []
        self.broken = broken

    def sendall(self, data):
        if self.broken:
            raise BrokenPipeError("gone")
        self.sent.append(protocol.decode(data))


@pytest.fixture
def broker(tmp_path):
    server = FeedBroker(str(tmp_path / "feed.sock"))
    yield server
    server.server_close()


def test_broadcast_skips_sender_and_filters_projects(broker):
    sender_req, all_req, match_req, other_req = FakeRequest(), FakeRequest(), FakeRequest(), FakeRequest()
    sender = broker.add_subscriber(sender_req)
    broker.add_subscriber(all_req)
    broker.handle_message(broker.add_subscriber(match_req), protocol.subscribe_message(4))
    broker.handle_message(broker.add_subscriber(other_req), protocol.subscribe_message(5))

    broker.handle_message(sender, protocol.event_message(protocol.Event(project_id=4)))

    assert sender_req.sent == []
    assert [m["event"]["sequence_id"] for m in all_req.sent] == [1]
    assert [m["event"]["project_id"] for m in match_req.sent] == [4]
    assert other_req.sent == []


def test_project_zero_event_reaches_everyone(broker):
    reqs = [FakeRequest() for _ in range(2)]
    broker.handle_message(broker.add_subscriber(reqs[0]), protocol.subscribe_message(9))
    broker.add_subscriber(reqs[1])

    assert broker.broadcast(protocol.Event(project_id=0)) == 1
    assert broker.broadcast(protocol.Event(project_id=0)) == 2
    assert all(len(r.sent) == 2 for r in reqs)


def test_failed_send_drops_subscriber(broker):
    broker.add_subscriber(FakeRequest(broken=True))
    broker.add_subscriber(FakeRequest())
    broker.broadcast(protocol.Event(project_id=1))
    assert broker.subscriber_count() == 1


def test_ping_drops_stale_subscribers(broker):
    fresh_req, stale_req = FakeRequest(), FakeRequest()
    fresh = broker.add_subscriber(fresh_req)
    stale = broker.add_subscriber(stale_req)
    stale.last_pong -= STALE_AFTER + 1

    result = broker.ping_all()

    assert result == {"pinged": 1, "removed": 1}
    assert fresh_req.sent == [protocol.ping_message()]
    assert stale_req.sent == []
    assert broker.subscriber_count() == 1

    broker.handle_message(fresh, protocol.pong_message())
    assert fresh.last_pong >= stale.last_pong


# --- client ---


def _client_pair(deliver):
    """A FeedClient wired to one end of a socketpair."""
    ours, theirs = socket.socketpair()
    client = FeedClient("/nonexistent/feed.sock", deliver)
    client._sock = ours
    client._reader = ours.makefile("rb")
    return client, theirs


def test_client_turns_events_into_refreshes():
    delivered = []
    client, peer = _client_pair(delivered.append)
    try:
        client._handle_message(protocol.event_message(protocol.Event(project_id=2, sequence_id=5)))
        client._handle_message(protocol.event_message(protocol.Event(project_id=2, sequence_id=5)))
        client._handle_message(protocol.event_message(protocol.Event(project_id=3, sequence_id=4)))
        client._handle_message(protocol.event_message(protocol.Event(project_id=3, sequence_id=6)))
    finally:
        client.close()
        peer.close()
    assert delivered == [RefreshMsg(project_id=2, sequence_id=5), RefreshMsg(project_id=3, sequence_id=6)]


def test_client_answers_ping():
    client, peer = _client_pair(lambda msg: None)
    try:
        client._handle_message(protocol.ping_message())
        peer.settimeout(2)
        assert protocol.decode(peer.makefile("rb").readline()) == protocol.pong_message()
    finally:
        client.close()
        peer.close()


def test_publish_without_connection_is_noop():
    client = FeedClient("/nonexistent/feed.sock", lambda msg: None)
    assert not client.publish(1)


def test_publish_sends_event():
    client, peer = _client_pair(lambda msg: None)
    try:
        assert client.publish(8)
        peer.settimeout(2)
        message = protocol.decode(peer.makefile("rb").readline())
        assert message["type"] == "event"
        assert message["event"]["project_id"] == 8
    finally:
        client.close()
        peer.close()


def test_client_gives_up_after_retries():
    delivered = []
    done = threading.Event()

    def deliver(msg):
        delivered.append(msg)
        if isinstance(msg, ConnectionLostMsg):
            done.set()

    client = FeedClient("/nonexistent/feed.sock", deliver, max_retries=2, base_delay=0.01)
    client.start()
    assert done.wait(5)
    client.close()

    assert delivered[0] == NotificationMsg("warning", LOST_TEXT)
    assert [m.attempt for m in delivered if isinstance(m, ConnectionReconnectingMsg)] == [1, 2]
    assert NotificationMsg("error", FAILED_TEXT) in delivered
    assert not any(isinstance(m, ConnectionEstablishedMsg) for m in delivered)


def test_client_connects_to_live_broker(tmp_path):
    path = str(tmp_path / "live.sock")
    server = FeedBroker(path)
    thread = threading.Thread(target=server.serve_forever, kwargs={"poll_interval": 0.05}, daemon=True)
    thread.start()

    delivered = []
    connected = threading.Event()
    refreshed = threading.Event()

    def deliver(msg):
        delivered.append(msg)
        if isinstance(msg, ConnectionEstablishedMsg):
            connected.set()
        if isinstance(msg, RefreshMsg):
            refreshed.set()

    listener = FeedClient(path, deliver)
    publisher = FeedClient(path, lambda msg: None)
    try:
        listener.start()
        assert connected.wait(2)
        publisher.connect()
        for _ in range(100):
            if server.subscriber_count() == 2:
                break
            threading.Event().wait(0.01)
        # Both subscriptions must be registered before publishing
        threading.Event().wait(0.1)
        assert publisher.publish(6)
        assert refreshed.wait(2)
        assert RefreshMsg(project_id=6, sequence_id=1) in delivered
    finally:
        publisher.close()
        listener.close()
        server.shutdown()
        server.server_close()
