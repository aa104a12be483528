"""Tests for trick resolution and turn rotation."""

import pytest

from helpers import card, make_state
from trickroom_server.errors import StructuralViolation
from trickroom_server.game.resolver import determine_trick_winner, next_player_id, process_trick_win
from trickroom_server.models.card import Suit
from trickroom_server.models.game_state import GameStatus, TrickCard


def trick(*plays: tuple[str, str]) -> list[TrickCard]:
    return [TrickCard(player_id=pid, card=card(code)) for pid, code in plays]


class TestDetermineTrickWinner:
    """Tests for determine_trick_winner."""

    def test_highest_lead_suit_wins(self):
        """Test the highest card of the lead suit wins."""
        plays = trick(("A", "7D"), ("B", "KD"), ("C", "AS"), ("D", "9D"))
        assert determine_trick_winner(plays, Suit.DIAMONDS) == "B"

    def test_off_suit_never_wins(self):
        """Test off-suit cards cannot win, however high."""
        plays = trick(("A", "2H"), ("B", "AS"), ("C", "AC"), ("D", "AD"))
        assert determine_trick_winner(plays, Suit.HEARTS) == "A"

    def test_ten_beats_nine(self):
        """Test numeric ranks compare by value, not text."""
        plays = trick(("A", "9C"), ("B", "10C"))
        assert determine_trick_winner(plays, Suit.CLUBS) == "B"

    def test_two_player_trick(self):
        """Test a trick with only two cards."""
        plays = trick(("A", "QS"), ("B", "JS"))
        assert determine_trick_winner(plays, Suit.SPADES) == "A"

    def test_no_lead_suit_card(self):
        """Test a trick without a lead-suit card is a structural violation."""
        plays = trick(("A", "QS"), ("B", "JS"))
        with pytest.raises(StructuralViolation):
            determine_trick_winner(plays, Suit.HEARTS)

    def test_empty_trick(self):
        """Test an empty trick is a structural violation."""
        with pytest.raises(StructuralViolation):
            determine_trick_winner([], Suit.HEARTS)


class TestProcessTrickWin:
    """Tests for process_trick_win."""

    def test_updates_state(self):
        """Test the winner scores and leads the next trick."""
        state = make_state({"A": "2H", "B": "3H"})
        state.current_trick = trick(("A", "7D"), ("B", "KD"))
        state.lead_suit = Suit.DIAMONDS
        state.current_player_id = None

        result = process_trick_win(state, "B")

        assert result is state
        assert state.get_player("B").tricks_won == 1
        assert state.get_player("A").tricks_won == 0
        assert state.current_trick == []
        assert state.lead_suit is None
        assert state.current_player_id == "B"
        assert state.trick_number == 2
        assert state.status == GameStatus.PLAYING

    def test_finishes_when_hands_empty(self):
        """Test the game finishes after the last trick."""
        state = make_state({"A": "", "B": ""})
        state.current_trick = trick(("A", "7D"), ("B", "KD"))
        state.lead_suit = Suit.DIAMONDS

        process_trick_win(state, "B")

        assert state.status == GameStatus.FINISHED
        assert state.get_player("B").tricks_won == 1


class TestNextPlayerId:
    """Tests for next_player_id."""

    def test_cycles(self):
        """Test the turn passes in order and wraps around."""
        state = make_state({"A": "", "B": "", "C": ""}, current="A")
        assert next_player_id(state) == "B"
        assert next_player_id(state, "B") == "C"
        assert next_player_id(state, "C") == "A"

    def test_unknown_starts_over(self):
        """Test an unknown id falls back to the first in order."""
        state = make_state({"A": "", "B": ""})
        assert next_player_id(state, "gone") == "A"

    def test_empty_turn_order(self):
        """Test an empty turn order is a structural violation."""
        state = make_state({"A": ""})
        state.turn_order = []
        with pytest.raises(StructuralViolation):
            next_player_id(state)


def test_four_player_scenario():
    """Test an off-suit club loses to the king of diamonds."""
    plays = trick(("A", "7D"), ("B", "2D"), ("C", "KD"), ("D", "3C"))
    assert determine_trick_winner(plays, Suit.DIAMONDS) == "C"


def test_turn_order_cycle():
    """Test next-player returns to the start after a full cycle."""
    state = make_state({"A": "", "B": "", "C": "", "D": ""})
    seen = ["A"]
    for _ in range(4):
        seen.append(next_player_id(state, seen[-1]))
    assert seen == ["A", "B", "C", "D", "A"]
