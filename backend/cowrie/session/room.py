"""Room and player models for a single game session."""

from dataclasses import dataclass, field

MAX_PLAYERS = 4
ROOM_ID_LENGTH = 5
# No I, O, 0 or 1: codes are read aloud and typed by hand.
ROOM_ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


@dataclass
class Player:
    """A seated participant, identified by its connection handle."""

    handle: str
    display_name: str


@dataclass
class Room:
    """One game session: roster, host authority and turn position.

    Seat order is roster order. The room starts in the lobby
    (started=False) and flips to active play exactly once.
    """

    room_id: str
    host_handle: str
    players: list[Player] = field(default_factory=list)
    started: bool = False
    current_index: int = 0

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def is_empty(self) -> bool:
        return not self.players

    @property
    def is_full(self) -> bool:
        return self.player_count >= MAX_PLAYERS

    @property
    def handles(self) -> list[str]:
        return [p.handle for p in self.players]

    def seat_of(self, handle: str) -> int | None:
        """Return the seat index of a handle, or None if it is not seated here."""
        for seat, player in enumerate(self.players):
            if player.handle == handle:
                return seat
        return None

    def is_host(self, handle: str) -> bool:
        return handle == self.host_handle

    def owns_turn(self, handle: str) -> bool:
        seat = self.seat_of(handle)
        return seat is not None and seat == self.current_index

