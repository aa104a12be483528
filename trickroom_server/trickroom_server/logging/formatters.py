"""Formatters for game log output."""

from trickroom_server.models.card import Card, Suit
from trickroom_server.models.game_state import TrickCard
from trickroom_server.models.player import Player

# Suit codes for log output
SUIT_CODES: dict[Suit, str] = {
    Suit.HEARTS: "H",
    Suit.DIAMONDS: "D",
    Suit.CLUBS: "C",
    Suit.SPADES: "S",
}


def format_card(card: Card) -> str:
    """Format a single card to string.

    Args:
        card: Card to format.

    Returns:
        Formatted string (e.g., "H10" for ten of hearts, "SA" for ace of spades).
    """
    return f"{SUIT_CODES[card.suit]}{card.rank.value}"


def format_cards(cards: list[Card]) -> str:
    """Format cards to a comma-separated string.

    Args:
        cards: Cards to format, kept in the given order.

    Returns:
        Comma-separated card strings (e.g., "HA,H7,C2").
        Empty string if no cards.
    """
    return ",".join(format_card(c) for c in cards)


def format_trick(trick: list[TrickCard]) -> list[dict[str, str]]:
    """Format a trick as a list of {player, card} records in play order."""
    return [{"player": tc.player_id, "card": format_card(tc.card)} for tc in trick]


def format_hands(players: list[Player]) -> dict[str, str]:
    """Format all players' hands to dict.

    Args:
        players: Seated players.

    Returns:
        Dict mapping player id to formatted hand string.
    """
    return {p.id: format_cards(p.hand) for p in players}
