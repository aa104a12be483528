"""Move validation for submitted plays."""

from dataclasses import dataclass

from trickroom_server.errors import RejectReason
from trickroom_server.models.card import Card
from trickroom_server.models.game_state import GameState


@dataclass
class ValidationResult:
    """Result of move validation."""

    is_valid: bool
    error_message: str = ""
    reason: RejectReason | None = None

    @classmethod
    def reject(cls, reason: RejectReason, message: str) -> "ValidationResult":
        return cls(is_valid=False, error_message=message, reason=reason)


def is_move_valid(state: GameState, player_id: str, card: Card) -> ValidationResult:
    """Check whether a player may play a card now.

    Checks, in order: the player exists, it is their turn, the card is in
    their hand, and they follow the lead suit when able. No side effects.

    Args:
        state: Current game state
        player_id: Durable id of the acting player
        card: Card being played

    Returns:
        ValidationResult
    """
    player = state.get_player(player_id)
    if player is None:
        return ValidationResult.reject(RejectReason.PLAYER_NOT_FOUND, "Player not found.")

    if state.current_player_id != player_id:
        return ValidationResult.reject(RejectReason.NOT_YOUR_TURN, "It's not your turn.")

    if not player.holds(card):
        return ValidationResult.reject(
            RejectReason.CARD_NOT_IN_HAND,
            "You don't have that card in your hand.",
        )

    # Must follow the lead suit if possible
    lead_suit = state.lead_suit
    if lead_suit is not None and card.suit != lead_suit and player.holds_suit(lead_suit):
        return ValidationResult.reject(
            RejectReason.MUST_FOLLOW_SUIT,
            f"You must follow suit by playing a {lead_suit.value}.",
        )

    return ValidationResult(is_valid=True)
