"""Process-wide counters for session lifecycle events."""

import time
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class MetricsSnapshot(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    started_at: str
    connections: int
    active_sockets: int
    rooms_created: int
    games_started: int
    rolls: int
    moves: int
    join_errors: int
    client_errors: int
    rooms_active: int
    players_active: int
    uptime_seconds: int


class Metrics:
    """Monotonic counters plus the live connection gauge.

    The session layer only calls the `record_*` methods; room and
    player gauges are read from the registry when a snapshot is taken.
    """

    def __init__(self) -> None:
        self.started_at = datetime.now(UTC)
        self._started_monotonic = time.monotonic()
        self.connections = 0
        self.active_sockets = 0
        self.rooms_created = 0
        self.games_started = 0
        self.rolls = 0
        self.moves = 0
        self.join_errors = 0
        self.client_errors = 0

    @property
    def uptime_seconds(self) -> int:
        return int(time.monotonic() - self._started_monotonic)

    def record_connect(self) -> None:
        self.connections += 1
        self.active_sockets += 1

    def record_disconnect(self) -> None:
        self.active_sockets = max(0, self.active_sockets - 1)

    def record_room_created(self) -> None:
        self.rooms_created += 1

    def record_game_started(self) -> None:
        self.games_started += 1

    def record_roll(self) -> None:
        self.rolls += 1

    def record_move(self) -> None:
        self.moves += 1

    def record_join_error(self) -> None:
        self.join_errors += 1

    def record_client_error(self) -> None:
        self.client_errors += 1

    def snapshot(self, *, rooms_active: int, players_active: int) -> MetricsSnapshot:
        return MetricsSnapshot(
            started_at=self.started_at.isoformat(),
            connections=self.connections,
            active_sockets=self.active_sockets,
            rooms_created=self.rooms_created,
            games_started=self.games_started,
            rolls=self.rolls,
            moves=self.moves,
            join_errors=self.join_errors,
            client_errors=self.client_errors,
            rooms_active=rooms_active,
            players_active=players_active,
            uptime_seconds=self.uptime_seconds,
        )
