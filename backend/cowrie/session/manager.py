import contextlib
import random
from collections.abc import AsyncIterator
from typing import Any

import structlog

from cowrie.messaging.groups import BroadcastGroups, send_quietly
from cowrie.messaging.protocol import ConnectionProtocol
from cowrie.messaging.types import (
    GameStartedMessage,
    JoinErrorMessage,
    LobbyUpdateMessage,
    MoveRelayMessage,
    RollResultMessage,
    RoomCreatedMessage,
    RoomJoinedMessage,
    TurnAdvancedMessage,
    WireModel,
)
from cowrie.session import turns
from cowrie.session.exceptions import AlreadyInRoomError, MissingNameError, UserInputError
from cowrie.session.metrics import Metrics, MetricsSnapshot
from cowrie.session.registry import RoomRegistry
from cowrie.session.room import Room
from cowrie.session.turns import DenialReason, Transition

logger = structlog.get_logger()


class SessionManager:
    """Apply inbound player events to rooms and fan the results out.

    Each room is changed only while its lock is held, and the lock stays
    held until the resulting broadcast has been handed to every member,
    so members never see a half-applied transition and two events for
    the same room never interleave. Different rooms never wait on each
    other.
    """

    def __init__(
        self,
        registry: RoomRegistry | None = None,
        *,
        groups: BroadcastGroups | None = None,
        metrics: Metrics | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._registry = registry or RoomRegistry()
        self._groups = groups or BroadcastGroups()
        self._metrics = metrics or Metrics()
        self._rng = rng or random.SystemRandom()
        self._connections: dict[str, ConnectionProtocol] = {}

    @property
    def registry(self) -> RoomRegistry:
        return self._registry

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def metrics_snapshot(self) -> MetricsSnapshot:
        return self._metrics.snapshot(
            rooms_active=self._registry.room_count,
            players_active=self._registry.player_count,
        )

    def register_connection(self, connection: ConnectionProtocol) -> None:
        self._connections[connection.connection_id] = connection
        self._metrics.record_connect()

    def unregister_connection(self, connection: ConnectionProtocol) -> None:
        if self._connections.pop(connection.connection_id, None) is not None:
            self._metrics.record_disconnect()

    # --- Lobby ---

    async def create_room(self, connection: ConnectionProtocol, name: str) -> Room | None:
        """Open a new room with the sender as host. Returns None on a user error."""
        handle = connection.connection_id
        try:
            if not name:
                raise MissingNameError
            if self._registry.find_by_handle(handle) is not None:
                raise AlreadyInRoomError
        except UserInputError as e:
            await self._send_join_error(connection, e)
            return None

        room = self._registry.create_room(handle, name)
        self._metrics.record_room_created()
        self._groups.add(room.room_id, connection)

        lock = self._registry.get_lock(room.room_id)
        async with lock:
            await send_quietly(connection, RoomCreatedMessage(room_id=room.room_id, host_id=room.host_handle).to_wire())
            await self._broadcast(room, LobbyUpdateMessage.from_room(room))
        return room

    async def join_room(self, connection: ConnectionProtocol, room_id: str, name: str) -> None:
        """Seat the sender in an existing lobby, or tell it why not."""
        handle = connection.connection_id
        if not name:
            await self._send_join_error(connection, MissingNameError())
            return

        # Unknown room: nothing to lock, the registry raises RoomNotFoundError.
        lock = self._registry.get_lock(room_id) or contextlib.nullcontext()
        async with lock:
            try:
                added = self._registry.join(room_id, handle, name)
            except UserInputError as e:
                await self._send_join_error(connection, e)
                return
            if not added:
                return

            room = self._registry.find_room(room_id)
            self._groups.add(room_id, connection)
            logger.info("player joined room", room_id=room_id, seat=room.seat_of(handle))
            await send_quietly(connection, RoomJoinedMessage(room_id=room_id, host_id=room.host_handle).to_wire())
            await self._broadcast(room, LobbyUpdateMessage.from_room(room))

    # --- Turn actions ---

    async def start_game(self, connection: ConnectionProtocol) -> Transition:
        handle = connection.connection_id
        async with self._locked_room_of(handle) as room:
            if room is None:
                return Transition.deny(DenialReason.NOT_SEATED)
            result = turns.start_game(room, handle)
            if not result.applied:
                self._log_denied("start-game", room, result)
                return result

            self._metrics.record_game_started()
            logger.info("game started", room_id=room.room_id, players=room.player_count)
            await self._broadcast(room, GameStartedMessage.from_room(room))
        return result

    async def request_roll(self, connection: ConnectionProtocol) -> Transition:
        handle = connection.connection_id
        async with self._locked_room_of(handle) as room:
            if room is None:
                return Transition.deny(DenialReason.NOT_SEATED)
            result = turns.request_roll(room, handle, self._rng)
            if not result.applied:
                self._log_denied("roll-request", room, result)
                return result

            self._metrics.record_roll()
            if result.turn_advanced:
                await self._broadcast(room, TurnAdvancedMessage(current_index=room.current_index))
            await self._broadcast(room, RollResultMessage(roll=result.roll, player_id=handle))
        return result

    async def make_move(self, connection: ConnectionProtocol, move: Any) -> Transition:  # noqa: ANN401
        handle = connection.connection_id
        async with self._locked_room_of(handle) as room:
            if room is None:
                return Transition.deny(DenialReason.NOT_SEATED)
            result = turns.submit_move(room, handle, move)
            if not result.applied:
                self._log_denied("move-made", room, result)
                return result

            self._metrics.record_move()
            await self._broadcast(room, MoveRelayMessage(move=result.move, player_id=handle))
        return result

    async def advance_turn(self, connection: ConnectionProtocol, next_index: int) -> Transition:
        handle = connection.connection_id
        async with self._locked_room_of(handle) as room:
            if room is None:
                return Transition.deny(DenialReason.NOT_SEATED)
            result = turns.advance_turn(room, handle, next_index)
            if not result.applied:
                self._log_denied("turn-advance", room, result, next_index=next_index)
                return result

            await self._broadcast(room, TurnAdvancedMessage(current_index=room.current_index))
        return result

    # --- Telemetry and teardown ---

    def report_client_error(
        self,
        connection: ConnectionProtocol,
        message: str | None,
        stack: str | None = None,
        context: Any = None,  # noqa: ANN401
    ) -> None:
        """Record an error the client reported about itself. Never touches room state."""
        self._metrics.record_client_error()
        logger.warning(
            "client reported error",
            connection_id=connection.connection_id,
            error_message=message or "unknown",
            stack=stack,
            client_context=context,
        )

    async def disconnect(self, connection: ConnectionProtocol) -> None:
        """Unseat a departing connection and repair its room.

        An emptied room is deleted. Otherwise the remaining members get
        the new roster and the (possibly re-clamped) turn index.
        """
        handle = connection.connection_id
        self._groups.discard_connection(handle)

        found = self._registry.find_by_handle(handle)
        if found is None:
            return
        room_id = found[0].room_id
        lock = self._registry.get_lock(room_id)
        if lock is None:
            return

        room_empty = False
        async with lock:
            left = self._registry.leave(handle)
            if left is None:
                return
            room, departure = left
            room_empty = departure.room_empty
            logger.info(
                "player left room",
                room_id=room_id,
                seat=departure.seat,
                host_changed=departure.host_changed,
                room_empty=room_empty,
            )
            if not room_empty:
                await self._broadcast(room, LobbyUpdateMessage.from_room(room))
                await self._broadcast(room, TurnAdvancedMessage(current_index=room.current_index))

        # Drop the lock outside the async with block that is still using it.
        if room_empty:
            self._registry.discard_lock(room_id)
            self._groups.drop_group(room_id)

    # --- Internal helpers ---

    @contextlib.asynccontextmanager
    async def _locked_room_of(self, handle: str) -> AsyncIterator[Room | None]:
        """Hold the lock of the room a handle is seated in; yield None if it is in none."""
        found = self._registry.find_by_handle(handle)
        lock = self._registry.get_lock(found[0].room_id) if found is not None else None
        if lock is None:
            yield None
            return
        async with lock:
            # The room may have emptied while we waited for the lock.
            found = self._registry.find_by_handle(handle)
            yield found[0] if found is not None else None

    async def _broadcast(self, room: Room, message: WireModel) -> None:
        await self._groups.broadcast(room.room_id, message.to_wire())

    async def _send_join_error(self, connection: ConnectionProtocol, error: UserInputError) -> None:
        self._metrics.record_join_error()
        logger.info("join rejected", connection_id=connection.connection_id, reason=type(error).__name__)
        await send_quietly(connection, JoinErrorMessage(message=error.message).to_wire())

    @staticmethod
    def _log_denied(event: str, room: Room, result: Transition, **extra: Any) -> None:  # noqa: ANN401
        logger.debug("action denied", client_event=event, room_id=room.room_id, reason=result.denied_reason, **extra)
