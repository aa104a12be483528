"""Card model and card helpers."""

from enum import Enum

from pydantic import BaseModel


class Suit(str, Enum):
    """Card suit (value is the wire representation)."""

    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"
    SPADES = "spades"


class Rank(str, Enum):
    """Card rank (value is the wire representation)."""

    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"
    ACE = "A"


# Presentation order for sorted hands; no rules significance
SUIT_ORDER: list[Suit] = [Suit.HEARTS, Suit.DIAMONDS, Suit.CLUBS, Suit.SPADES]

RANK_VALUES: dict[Rank, int] = {
    Rank.TWO: 2,
    Rank.THREE: 3,
    Rank.FOUR: 4,
    Rank.FIVE: 5,
    Rank.SIX: 6,
    Rank.SEVEN: 7,
    Rank.EIGHT: 8,
    Rank.NINE: 9,
    Rank.TEN: 10,
    Rank.JACK: 11,
    Rank.QUEEN: 12,
    Rank.KING: 13,
    Rank.ACE: 14,
}

SUIT_SYMBOLS = {
    Suit.HEARTS: "♥",
    Suit.DIAMONDS: "♦",
    Suit.CLUBS: "♣",
    Suit.SPADES: "♠",
}


class Card(BaseModel, frozen=True):
    """Single playing card."""

    suit: Suit
    rank: Rank

    @property
    def value(self) -> int:
        """Rank value for comparison (2=2 ... A=14)."""
        return RANK_VALUES[self.rank]

    def __str__(self) -> str:
        return f"{SUIT_SYMBOLS[self.suit]}{self.rank.value}"

    def __repr__(self) -> str:
        return str(self)


# Shown in place of every card a recipient is not allowed to see
PLACEHOLDER_CARD = Card(suit=Suit.SPADES, rank=Rank.TWO)

TWO_OF_CLUBS = Card(suit=Suit.CLUBS, rank=Rank.TWO)


def sort_cards(cards: list[Card]) -> list[Card]:
    """Return cards sorted from lowest to highest value."""
    return sorted(cards, key=lambda c: c.value)


def sort_hand(hand: list[Card]) -> list[Card]:
    """Return a hand sorted for display: by suit, then by descending rank."""
    return sorted(hand, key=lambda c: (SUIT_ORDER.index(c.suit), -c.value))


def group_by_suit(cards: list[Card]) -> dict[Suit, list[Card]]:
    """Group cards by suit.

    Every suit is present as a key, in SUIT_ORDER, even when empty.
    """
    groups: dict[Suit, list[Card]] = {suit: [] for suit in SUIT_ORDER}
    for card in cards:
        groups[card.suit].append(card)
    return groups


def full_deck() -> list[Card]:
    """Create the 52 cards in a fixed, unshuffled order."""
    return [Card(suit=suit, rank=rank) for suit in SUIT_ORDER for rank in Rank]
