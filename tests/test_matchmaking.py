"""Tests for relay.matchmaking: waiting queue, sessions and room directory."""

import pytest

from relay.matchmaking import RoomDirectory, Session, WaitingQueue


# ======================================================================
# Waiting Queue
# ======================================================================


class TestWaitingQueue:
    def test_empty_dequeue_returns_none(self):
        q = WaitingQueue()
        assert q.dequeue_oldest() is None
        assert len(q) == 0

    def test_fifo_order(self):
        q = WaitingQueue()
        for cid in ("a", "b", "c"):
            q.enqueue(cid)
        assert q.dequeue_oldest() == "a"
        assert q.dequeue_oldest() == "b"
        assert q.dequeue_oldest() == "c"
        assert q.dequeue_oldest() is None

    def test_enqueue_is_idempotent(self):
        q = WaitingQueue()
        assert q.enqueue("a") is True
        assert q.enqueue("a") is False
        assert len(q) == 1

    def test_duplicate_enqueue_keeps_original_place(self):
        q = WaitingQueue()
        q.enqueue("a")
        q.enqueue("b")
        q.enqueue("a")
        assert q.snapshot() == ["a", "b"]

    def test_remove(self):
        q = WaitingQueue()
        q.enqueue("a")
        q.enqueue("b")
        assert q.remove("a") is True
        assert "a" not in q
        assert q.dequeue_oldest() == "b"

    def test_remove_missing_is_noop(self):
        q = WaitingQueue()
        assert q.remove("ghost") is False
        q.enqueue("a")
        q.remove("a")
        assert q.remove("a") is False

    def test_position(self):
        q = WaitingQueue()
        q.enqueue("a")
        q.enqueue("b")
        assert q.position("a") == 1
        assert q.position("b") == 2
        assert q.position("c") == 0

    def test_requeue_after_remove_goes_to_back(self):
        q = WaitingQueue()
        q.enqueue("a")
        q.enqueue("b")
        q.remove("a")
        q.enqueue("a")
        assert q.snapshot() == ["b", "a"]


# ======================================================================
# Sessions
# ======================================================================


class TestSession:
    def test_session_id_embeds_initiator_first(self):
        s = Session(initiator_id="waiter", responder_id="arriver")
        assert s.session_id == "room_waiter_arriver"

    def test_participants_unordered(self):
        s = Session("x", "y")
        assert s.participants == frozenset({"y", "x"})

    def test_partner_of(self):
        s = Session("x", "y")
        assert s.partner_of("x") == "y"
        assert s.partner_of("y") == "x"
        assert s.partner_of("z") is None

    def test_self_pairing_rejected(self):
        with pytest.raises(ValueError):
            Session("x", "x")

    def test_to_dict(self):
        s = Session("x", "y")
        assert s.to_dict() == {
            "room": "room_x_y",
            "initiator_id": "x",
            "responder_id": "y",
        }


# ======================================================================
# Room Directory
# ======================================================================


class TestRoomDirectory:
    def test_create_and_lookup(self):
        rooms = RoomDirectory()
        session = rooms.create("a", "b")
        assert rooms.lookup(session.session_id) == session
        assert session.initiator_id == "a"
        assert session.responder_id == "b"
        assert len(rooms) == 1

    def test_lookup_missing(self):
        assert RoomDirectory().lookup("room_nope_nope2") is None

    def test_create_rejects_same_connection(self):
        rooms = RoomDirectory()
        with pytest.raises(ValueError):
            rooms.create("a", "a")
        assert len(rooms) == 0

    def test_find_rooms_containing(self):
        rooms = RoomDirectory()
        s1 = rooms.create("a", "b")
        rooms.create("c", "d")
        assert rooms.find_rooms_containing("a") == {s1.session_id}
        assert rooms.find_rooms_containing("b") == {s1.session_id}
        assert rooms.find_rooms_containing("z") == set()

    def test_find_returns_a_copy(self):
        rooms = RoomDirectory()
        s1 = rooms.create("a", "b")
        found = rooms.find_rooms_containing("a")
        found.clear()
        assert rooms.find_rooms_containing("a") == {s1.session_id}

    def test_destroy(self):
        rooms = RoomDirectory()
        session = rooms.create("a", "b")
        assert rooms.destroy(session.session_id) == session
        assert rooms.lookup(session.session_id) is None
        assert rooms.find_rooms_containing("a") == set()
        assert rooms.find_rooms_containing("b") == set()
        assert len(rooms) == 0

    def test_destroy_twice(self):
        rooms = RoomDirectory()
        session = rooms.create("a", "b")
        rooms.destroy(session.session_id)
        assert rooms.destroy(session.session_id) is None

    def test_new_pair_gets_new_id(self):
        rooms = RoomDirectory()
        s1 = rooms.create("a", "b")
        rooms.destroy(s1.session_id)
        s2 = rooms.create("a", "c")
        assert s2.session_id != s1.session_id
        assert rooms.lookup(s1.session_id) is None
