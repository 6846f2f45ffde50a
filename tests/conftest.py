import random

import pytest

from celebrity.game_logic import dispatch
from celebrity.registry import RoomRegistry
from celebrity.room import Room
from celebrity.schemas import Participant


class MockWebSocket:
    """Lightweight stand-in for fastapi.WebSocket that records sent JSON."""

    def __init__(self):
        self.sent_messages: list = []
        self.closed = False

    async def send_json(self, data: dict):
        self.sent_messages.append(data)

    async def close(self, code: int = 1000):
        self.closed = True

    def last(self, msg_type: str):
        for msg in reversed(self.sent_messages):
            if msg.get("type") == msg_type:
                return msg
        return None

    def all(self, msg_type: str) -> list:
        return [m for m in self.sent_messages if m.get("type") == msg_type]


class FakeClock:
    def __init__(self, now: int = 1_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def send():
    """Dispatch ``{"type": command, **payload}`` from *user_id*."""

    def _send(room, user_id, command, **payload):
        return dispatch(room, user_id, {"type": command, **payload})

    return _send


@pytest.fixture()
def make_room(clock):
    """Build a lobby whose first named player is the host.

    Participant ids are the lower-cased display names.
    """

    def _make(*names, seed=0):
        host = Participant(id=names[0].lower(), display_name=names[0])
        room = Room("ABC123", host, rng=random.Random(seed), clock=clock)
        for name in names[1:]:
            room.add_participant(Participant(id=name.lower(), display_name=name))
        return room

    return _make


@pytest.fixture()
def started_room(make_room, send):
    """Alice (host, team A) and Bob (team B), three names each, game started."""
    room = make_room("Alice", "Bob")
    send(room, "alice", "join_team", team="A")
    send(room, "bob", "join_team", team="B")
    send(room, "alice", "start_submitting")
    send(room, "alice", "submit_names", names=["Ada Lovelace", "Alan Turing", "Grace Hopper"])
    send(room, "bob", "submit_names", names=["Marie Curie", "Nikola Tesla", "Rosalind Franklin"])
    assert send(room, "alice", "start_game").applied
    return room


@pytest.fixture()
def registry(clock):
    return RoomRegistry(rng=random.Random(42), clock=clock)
