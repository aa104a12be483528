"""Shared test helpers."""

from typing import Callable

from trickroom_server.game.timers import Scheduler, TimerHandle
from trickroom_server.models.card import Card, Rank, Suit
from trickroom_server.models.game_state import GameState, GameStatus
from trickroom_server.models.player import Player

# Distinct delays so tests can tell the timer families apart
TURN_TIMEOUT = 60.0
TRICK_END_DELAY = 2.0
RECONNECTION_TIMEOUT = 30.0

SUIT_LETTERS = {
    "H": Suit.HEARTS,
    "D": Suit.DIAMONDS,
    "C": Suit.CLUBS,
    "S": Suit.SPADES,
}


def card(code: str) -> Card:
    """Build a card from a short code such as "7D", "10H" or "AS"."""
    return Card(suit=SUIT_LETTERS[code[-1]], rank=Rank(code[:-1]))


def cards(codes: str) -> list[Card]:
    """Build cards from space separated codes."""
    return [card(code) for code in codes.split()]


def make_state(
    hands: dict[str, str],
    current: str | None = None,
    game_id: str = "game-TEST",
) -> GameState:
    """Build a playing state with fixed hands.

    Players are seated, and take turns, in the order of `hands`.
    """
    players = [
        Player(
            id=pid,
            session_id=f"sid-{pid}",
            name=pid.upper(),
            is_host=index == 0,
            hand=cards(codes),
            voice_uid=1000 + index,
        )
        for index, (pid, codes) in enumerate(hands.items())
    ]
    order = list(hands)
    state = GameState(
        id=game_id,
        players=players,
        current_player_id=current or order[0],
        turn_order=order,
        host_id=order[0],
        max_players=4,
    )
    state.set_status(GameStatus.PLAYING)
    return state


class ManualTimer(TimerHandle):
    """Timer that only fires when a test says so."""

    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self._active = True

    def cancel(self) -> None:
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def fire(self) -> None:
        if not self._active:
            return
        self._active = False
        self.callback()


class ManualScheduler(Scheduler):
    """Scheduler whose timers are fired by hand."""

    def __init__(self):
        self.timers: list[ManualTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(delay, callback)
        self.timers.append(timer)
        return timer

    def pending(self, delay: float | None = None) -> list[ManualTimer]:
        return [t for t in self.timers if t.active and (delay is None or t.delay == delay)]

    def fire_next(self, delay: float | None = None) -> ManualTimer:
        """Fire the oldest pending timer (optionally with a given delay)."""
        timer = self.pending(delay)[0]
        timer.fire()
        return timer
