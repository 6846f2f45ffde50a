import pytest

from celebrity.errors import GameAlreadyStarted, RoomNotFound
from celebrity.game_logic import create_room, disconnect, find_joinable_room, handle_ws_message, join_room
from celebrity.identity import IdentityProvider
from celebrity.registry import RoomRegistry
from celebrity.schemas import Participant

from conftest import MockWebSocket


async def lobby_with(registry, *names):
    """Create a room through the public entry points; ids are lower-cased names."""
    sockets = {}
    host_id = names[0].lower()
    sockets[host_id] = MockWebSocket()
    room, _ = await create_room(registry, host_id, {"name": names[0]}, sockets[host_id])
    for name in names[1:]:
        user_id = name.lower()
        sockets[user_id] = MockWebSocket()
        await join_room(registry, user_id, {"code": room.code, "name": name}, sockets[user_id])
    return room, sockets


async def start_two_team_game(registry):
    room, sockets = await lobby_with(registry, "Alice", "Bob")
    await handle_ws_message(room, "alice", {"type": "join_team", "team": "A"})
    await handle_ws_message(room, "bob", {"type": "join_team", "team": "B"})
    await handle_ws_message(room, "alice", {"type": "start_submitting"})
    await handle_ws_message(room, "alice", {"type": "submit_names", "names": ["Cher", "Prince", "Madonna"]})
    await handle_ws_message(room, "bob", {"type": "submit_names", "names": ["Bono", "Sting", "Adele"]})
    result = await handle_ws_message(room, "alice", {"type": "start_game"})
    assert result.applied
    return room, sockets


# -------------------- Codes & lookup -------------------- #

@pytest.mark.asyncio
async def test_create_assigns_upper_case_six_char_code(registry):
    room = await registry.create(Participant(id="h", display_name="Host"))
    assert len(room.code) == 6
    assert room.code == room.code.upper()
    assert room.code.isalnum()
    assert room.participants[0].is_host


@pytest.mark.asyncio
async def test_lookup_is_case_insensitive(registry):
    room = await registry.create(Participant(id="h", display_name="Host"))
    assert await registry.get(room.code.lower()) is room
    assert await registry.get(f"  {room.code.lower()} ") is room
    assert room.code.lower() in registry
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_colliding_code_is_regenerated():
    chars = iter("AAAAAA" + "AAAAAA" + "BBBBBB")
    registry = RoomRegistry(identity=IdentityProvider(choose=lambda alphabet: next(chars)))
    first = await registry.create(Participant(id="h1", display_name="One"))
    second = await registry.create(Participant(id="h2", display_name="Two"))
    assert first.code == "AAAAAA"
    assert second.code == "BBBBBB"
    assert await registry.get("AAAAAA") is first


@pytest.mark.asyncio
async def test_remove_and_find_by_participant(registry):
    room, _ = await lobby_with(registry, "Alice", "Bob")
    assert await registry.find_by_participant("bob") is room
    assert await registry.find_by_participant("zed") is None
    assert await registry.remove(room.code) is room
    assert await registry.get(room.code) is None
    assert await registry.remove(room.code) is None


# -------------------- Create / join -------------------- #

@pytest.mark.asyncio
async def test_join_broadcasts_to_everyone_in_room(registry):
    room, sockets = await lobby_with(registry, "Alice", "Bob")
    update = sockets["alice"].last("room_update")
    assert update is not None
    assert [p["id"] for p in update["data"]["participants"]] == ["alice", "bob"]
    assert sockets["bob"].last("room_update") == update
    assert room.participant("bob").display_name == "Bob"
    assert not room.participant("bob").is_host


@pytest.mark.asyncio
async def test_join_unknown_room(registry):
    with pytest.raises(RoomNotFound):
        await join_room(registry, "bob", {"code": "ZZZZZZ", "name": "Bob"})


@pytest.mark.asyncio
async def test_join_after_game_start(registry):
    room, _ = await start_two_team_game(registry)
    with pytest.raises(GameAlreadyStarted):
        await join_room(registry, "cara", {"code": room.code, "name": "Cara"})
    assert room.participant("cara") is None


@pytest.mark.asyncio
async def test_join_after_submitting_started(registry):
    room, _ = await lobby_with(registry, "Alice")
    await handle_ws_message(room, "alice", {"type": "start_submitting"})
    with pytest.raises(GameAlreadyStarted):
        await join_room(registry, "bob", {"code": room.code.lower(), "name": "Bob"})


@pytest.mark.asyncio
async def test_join_closed_room_is_not_found(registry):
    room, _ = await lobby_with(registry, "Alice")
    room.closed = True
    with pytest.raises(RoomNotFound):
        await join_room(registry, "bob", {"code": room.code, "name": "Bob"})


@pytest.mark.asyncio
async def test_find_joinable_room_changes_nothing(registry):
    room, sockets = await lobby_with(registry, "Alice")
    before = len(sockets["alice"].sent_messages)
    assert await find_joinable_room(registry, {"code": room.code.lower(), "name": "Bob"}) is room
    assert [p.id for p in room.participants] == ["alice"]
    assert len(sockets["alice"].sent_messages) == before
    with pytest.raises(RoomNotFound):
        await find_joinable_room(registry, {"code": "ZZZZZZ", "name": "Bob"})
    await handle_ws_message(room, "alice", {"type": "start_submitting"})
    with pytest.raises(GameAlreadyStarted):
        await find_joinable_room(registry, {"code": room.code, "name": "Bob"})


# -------------------- Dispatch -------------------- #

@pytest.mark.asyncio
async def test_ignored_command_is_silent(registry):
    room, sockets = await lobby_with(registry, "Alice", "Bob")
    before = len(sockets["alice"].sent_messages)
    result = await handle_ws_message(room, "bob", {"type": "start_submitting"})
    assert not result.applied
    assert result.reason == "not_host"
    assert len(sockets["alice"].sent_messages) == before
    assert sockets["bob"].all("reply") == []


@pytest.mark.asyncio
async def test_applied_command_broadcasts_snapshot(registry):
    room, sockets = await lobby_with(registry, "Alice", "Bob")
    await handle_ws_message(room, "bob", {"type": "join_team", "team": "B"})
    data = sockets["alice"].last("room_update")["data"]
    assert data["participants"][1]["team"] == "B"


# -------------------- Disconnect -------------------- #

@pytest.mark.asyncio
async def test_host_disconnect_promotes_earliest_joiner(registry):
    room, sockets = await lobby_with(registry, "Alice", "Bob", "Cara")
    await disconnect(registry, "alice")
    assert [p.id for p in room.participants] == ["bob", "cara"]
    assert room.host.id == "bob"
    data = sockets["cara"].last("room_update")["data"]
    assert data["host_id"] == "bob"
    assert "alice" not in room.connections


@pytest.mark.asyncio
async def test_last_member_leaving_destroys_room(registry):
    room, _ = await lobby_with(registry, "Alice", "Bob")
    await disconnect(registry, "alice", room)
    assert room.code in registry
    await disconnect(registry, "bob", room)
    assert room.closed
    assert room.code not in registry
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_disconnect_of_unknown_participant(registry):
    assert await disconnect(registry, "ghost") is None


@pytest.mark.asyncio
async def test_actor_disconnect_mid_turn_returns_name_and_hands_off(registry):
    room, sockets = await start_two_team_game(registry)
    turn = room.current_turn
    actor = turn.actor_id
    other = "bob" if actor == "alice" else "alice"
    await handle_ws_message(room, actor, {"type": "start_turn"})
    in_hand = room.current_turn.in_hand
    assert in_hand is not None

    await disconnect(registry, actor)

    assert room.participant(actor) is None
    assert in_hand in room.bowl
    assert len(room.bowl) == 6
    successor = room.current_turn
    assert successor.team != turn.team
    assert successor.actor_id == other
    assert successor.pending
    assert room.status == "playing"
    assert room.timer_task is None
    assert sockets[other].last("room_update")["data"]["current_turn"]["actor_id"] == other


@pytest.mark.asyncio
async def test_pending_actor_disconnect_picks_teammate(registry):
    room, _ = await lobby_with(registry, "Alice", "Bob", "Cara")
    await handle_ws_message(room, "alice", {"type": "join_team", "team": "A"})
    await handle_ws_message(room, "bob", {"type": "join_team", "team": "B"})
    await handle_ws_message(room, "cara", {"type": "join_team", "team": "B"})
    await handle_ws_message(room, "alice", {"type": "start_submitting"})
    await handle_ws_message(room, "bob", {"type": "submit_names", "names": ["Cher"]})
    await handle_ws_message(room, "alice", {"type": "start_game"})
    if room.current_turn.team == "A":
        await handle_ws_message(room, "alice", {"type": "start_turn"})
        await handle_ws_message(room, "alice", {"type": "end_turn"})
    assert room.current_turn.actor_id == "bob"

    await disconnect(registry, "bob")

    assert room.current_turn.actor_id == "cara"
    assert room.current_turn.pending

