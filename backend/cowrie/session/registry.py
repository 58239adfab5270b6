"""In-memory registry of live rooms."""

import asyncio
import random

import structlog

from cowrie.session.exceptions import (
    AlreadyInRoomError,
    GameAlreadyStartedError,
    RoomFullError,
    RoomNotFoundError,
)
from cowrie.session.room import ROOM_ID_ALPHABET, ROOM_ID_LENGTH, Player, Room
from cowrie.session.turns import Departure, remove_player

logger = structlog.get_logger()


class RoomRegistry:
    """Own every live Room, its lock, and the handle -> room index.

    A handle is seated in at most one room. The index is updated by the
    same calls that change a roster, so it never disagrees with
    `Room.players`. Callers serialize per-room changes with the lock
    returned by `get_lock`.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.SystemRandom()
        self._rooms: dict[str, Room] = {}
        self._room_locks: dict[str, asyncio.Lock] = {}
        self._handle_index: dict[str, str] = {}  # handle -> room_id

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    @property
    def player_count(self) -> int:
        return len(self._handle_index)

    def generate_room_id(self) -> str:
        """Draw ids until one is not in use. Checked on every draw."""
        while True:
            room_id = "".join(self._rng.choice(ROOM_ID_ALPHABET) for _ in range(ROOM_ID_LENGTH))
            if room_id not in self._rooms:
                return room_id

    def create_room(self, host_handle: str, host_name: str) -> Room:
        """Create a lobby room seating its host at seat 0."""
        room_id = self.generate_room_id()
        room = Room(room_id=room_id, host_handle=host_handle, players=[Player(host_handle, host_name)])
        self._rooms[room_id] = room
        self._room_locks[room_id] = asyncio.Lock()
        self._handle_index[host_handle] = room_id
        logger.info("room created", room_id=room_id, host=host_handle)
        return room

    def find_room(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def find_by_handle(self, handle: str) -> tuple[Room, int] | None:
        """Return the room a handle is seated in and its seat, if any."""
        room_id = self._handle_index.get(handle)
        if room_id is None:
            return None
        room = self._rooms.get(room_id)
        if room is None:
            return None
        seat = room.seat_of(handle)
        if seat is None:
            return None
        return room, seat

    def get_lock(self, room_id: str) -> asyncio.Lock | None:
        return self._room_locks.get(room_id)

    def join(self, room_id: str, handle: str, display_name: str) -> bool:
        """Seat a handle in a lobby room.

        Returns False when the handle is already seated there (nothing
        changes) and True when a new seat was added. Raises a
        UserInputError subclass when the join is not allowed.
        """
        current_room_id = self._handle_index.get(handle)
        if current_room_id is not None and current_room_id != room_id:
            raise AlreadyInRoomError

        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFoundError
        if room.started:
            raise GameAlreadyStartedError
        if room.is_full:
            raise RoomFullError
        if room.seat_of(handle) is not None:
            return False

        room.players.append(Player(handle, display_name))
        self._handle_index[handle] = room_id
        return True

    def leave(self, handle: str) -> tuple[Room, Departure] | None:
        """Unseat a handle. An emptied room is removed from the registry."""
        found = self.find_by_handle(handle)
        if found is None:
            self._handle_index.pop(handle, None)
            return None
        room, _seat = found
        departure = remove_player(room, handle)
        self._handle_index.pop(handle, None)
        if departure is not None and departure.room_empty:
            self.remove_room(room.room_id)
        return (room, departure) if departure is not None else None

    def remove_room(self, room_id: str) -> None:
        """Forget a room and unindex anyone still seated in it.

        The lock entry is kept until `discard_lock`, so a caller that
        holds it can release it normally.
        """
        room = self._rooms.pop(room_id, None)
        if room is None:
            return
        for handle in room.handles:
            if self._handle_index.get(handle) == room_id:
                del self._handle_index[handle]
        logger.info("room removed", room_id=room_id)

    def discard_lock(self, room_id: str) -> None:
        if room_id not in self._rooms:
            self._room_locks.pop(room_id, None)

    def rooms(self) -> list[Room]:
        return list(self._rooms.values())
