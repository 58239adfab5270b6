"""Shared helpers for session-level tests."""

from cowrie.messaging.encoder import decode, encode
from cowrie.session.manager import SessionManager
from cowrie.session.room import Room
from cowrie.tests.mocks import MockConnection


def connect(manager: SessionManager, connection_id: str) -> MockConnection:
    conn = MockConnection(connection_id)
    manager.register_connection(conn)
    return conn


async def create_room_with_players(
    manager: SessionManager,
    names: list[str],
) -> tuple[Room, list[MockConnection]]:
    """Create a room hosted by names[0] and join the rest in order.

    Connection ids are the lower-cased names, so seat order is easy to
    read in assertions. Message history is cleared before returning.
    """
    conns = [connect(manager, name.lower()) for name in names]
    room = await manager.create_room(conns[0], names[0])
    assert room is not None
    for conn, name in zip(conns[1:], names[1:], strict=True):
        await manager.join_room(conn, room.room_id, name)
    for conn in conns:
        conn.clear()
    return room, conns


async def create_started_game(
    manager: SessionManager,
    names: list[str],
) -> tuple[Room, list[MockConnection]]:
    room, conns = await create_room_with_players(manager, names)
    result = await manager.start_game(conns[0])
    assert result.applied
    for conn in conns:
        conn.clear()
    return room, conns


def send_ws(ws, data: dict) -> None:
    """Send a MessagePack-encoded message over a test WebSocket."""
    ws.send_bytes(encode(data))


def recv_ws(ws) -> dict:
    """Receive and decode a MessagePack message from a test WebSocket."""
    return decode(ws.receive_bytes())


def assert_room_invariants(room: Room) -> None:
    assert room.players, f"room {room.room_id} has no players"
    assert room.host_handle in room.handles, f"host of {room.room_id} is not seated"
    assert 0 <= room.current_index < room.player_count, (
        f"current_index {room.current_index} out of range for {room.player_count} players"
    )
    assert len(set(room.handles)) == room.player_count, f"duplicate handle in {room.room_id}"
