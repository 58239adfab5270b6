"""Turn state machine: lobby -> active play, turn ownership and recovery.

All functions here are synchronous and mutate the Room in place. They
never raise for rule violations: an action that is not allowed returns
a denied Transition and leaves the room untouched. Callers hold the
room lock for the duration of the call and the broadcast that follows.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from cowrie.session.room import Room

SHELL_COUNT = 4
# Zero shells down is the best throw; all four down counts as four.
NO_SHELLS_DOWN_VALUE = 8
ALL_SHELLS_DOWN_VALUE = 4


class DenialReason(StrEnum):
    NOT_SEATED = "not_seated"
    NOT_HOST = "not_host"
    ALREADY_STARTED = "already_started"
    NOT_STARTED = "not_started"
    NOT_YOUR_TURN = "not_your_turn"
    INDEX_OUT_OF_RANGE = "index_out_of_range"


@dataclass(frozen=True)
class Transition:
    """Outcome of a turn action.

    `denied_reason` is None when the transition was applied.
    `turn_advanced` reports that current_index changed and a
    turn-advanced notification is due; `roll` carries a roll value.
    """

    denied_reason: DenialReason | None = None
    turn_advanced: bool = False
    roll: int | None = None
    move: Any = None

    @property
    def applied(self) -> bool:
        return self.denied_reason is None

    @classmethod
    def deny(cls, reason: DenialReason) -> Transition:
        return cls(denied_reason=reason)


@dataclass(frozen=True)
class Departure:
    """What changed when a player left a room."""

    seat: int
    display_name: str
    host_changed: bool
    room_empty: bool


def score_shells(shells: list[bool]) -> int:
    """Convert shell outcomes (True = face down) to a move value."""
    down = sum(shells)
    if down == 0:
        return NO_SHELLS_DOWN_VALUE
    if down == SHELL_COUNT:
        return ALL_SHELLS_DOWN_VALUE
    return down


def roll_shells(rng: random.Random) -> int:
    """Throw four fair shells and score them.

    Distribution: 1 and 3 at 4/16, 2 at 6/16, 4 and 8 at 1/16.
    """
    return score_shells([rng.random() < 0.5 for _ in range(SHELL_COUNT)])


def start_game(room: Room, handle: str) -> Transition:
    """Move the room from lobby to active play. Host only, once."""
    if room.seat_of(handle) is None:
        return Transition.deny(DenialReason.NOT_SEATED)
    if not room.is_host(handle):
        return Transition.deny(DenialReason.NOT_HOST)
    if room.started:
        return Transition.deny(DenialReason.ALREADY_STARTED)
    room.started = True
    room.current_index = 0
    return Transition()


def request_roll(room: Room, handle: str, rng: random.Random) -> Transition:
    """Roll for the requesting seat.

    A roll from a seat that does not own the turn takes the turn over
    instead of being rejected: whoever acts next becomes current.
    """
    seat = room.seat_of(handle)
    if seat is None:
        return Transition.deny(DenialReason.NOT_SEATED)
    if not room.started:
        return Transition.deny(DenialReason.NOT_STARTED)
    turn_advanced = seat != room.current_index
    room.current_index = seat
    return Transition(turn_advanced=turn_advanced, roll=roll_shells(rng))


def submit_move(room: Room, handle: str, move: Any) -> Transition:  # noqa: ANN401
    """Accept an opaque move from the seat that owns the turn."""
    seat = room.seat_of(handle)
    if seat is None:
        return Transition.deny(DenialReason.NOT_SEATED)
    if not room.started:
        return Transition.deny(DenialReason.NOT_STARTED)
    if seat != room.current_index:
        return Transition.deny(DenialReason.NOT_YOUR_TURN)
    return Transition(move=move)


def advance_turn(room: Room, handle: str, next_index: int) -> Transition:
    """Hand the turn to `next_index`. Only the current seat may do this.

    Allowed in the lobby too: seat 0 owns the turn before the game starts.
    """
    seat = room.seat_of(handle)
    if seat is None:
        return Transition.deny(DenialReason.NOT_SEATED)
    if seat != room.current_index:
        return Transition.deny(DenialReason.NOT_YOUR_TURN)
    if not 0 <= next_index < room.player_count:
        return Transition.deny(DenialReason.INDEX_OUT_OF_RANGE)
    room.current_index = next_index
    return Transition(turn_advanced=True)


def remove_player(room: Room, handle: str) -> Departure | None:
    """Take a handle out of the roster and repair host and turn position.

    Host passes to whoever sits at seat 0 afterwards. current_index
    falls back to 0 when it would point past the end of the roster;
    otherwise it is left as is, even if seats shifted under it.
    Returns None if the handle was not seated.
    """
    seat = room.seat_of(handle)
    if seat is None:
        return None
    player = room.players.pop(seat)
    if room.is_empty:
        return Departure(seat=seat, display_name=player.display_name, host_changed=False, room_empty=True)

    host_changed = room.is_host(handle)
    if host_changed:
        room.host_handle = room.players[0].handle
    if room.current_index >= room.player_count:
        room.current_index = 0
    return Departure(seat=seat, display_name=player.display_name, host_changed=host_changed, room_empty=False)
