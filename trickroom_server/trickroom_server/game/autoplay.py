"""Fallback play for players whose turn timed out.

The policy is simple and deterministic apart from one tie-break:

- Following suit: win with the lowest card that beats the best lead-suit
  card on the table, or else throw the lowest card of the suit.
- Void in the lead suit: throw the lowest card of the longest suit held
  (random choice between equally long suits).
- Leading: play the highest card in hand.
"""

import logging
import random

from trickroom_server.models.card import Card, Suit, group_by_suit, sort_cards
from trickroom_server.models.game_state import TrickCard

logger = logging.getLogger(__name__)


def choose_autoplay_card(
    hand: list[Card],
    current_trick: list[TrickCard],
    lead_suit: Suit | None,
    rng: random.Random | None = None,
) -> Card:
    """Pick a card to play on a player's behalf.

    Args:
        hand: The player's hand
        current_trick: Cards already played to this trick
        lead_suit: Suit led, or None if the player is leading
        rng: Random source for the longest-suit tie-break

    Returns:
        Card from the hand

    Raises:
        ValueError: If the hand is empty
    """
    if not hand:
        raise ValueError("Cannot autoplay from an empty hand")

    if lead_suit is None:
        return _highest(hand)

    follow_cards = sort_cards([c for c in hand if c.suit == lead_suit])
    if follow_cards:
        return _follow(follow_cards, current_trick, lead_suit)

    return _discard(hand, rng)


def _highest(hand: list[Card]) -> Card:
    best = hand[0]
    for card in hand[1:]:
        if card.value > best.value:
            best = card
    return best


def _follow(follow_cards: list[Card], current_trick: list[TrickCard], lead_suit: Suit) -> Card:
    """Cheapest winning card, or cheapest card if none wins."""
    played = [tc.card.value for tc in current_trick if tc.card.suit == lead_suit]
    if not played:
        return follow_cards[0]

    to_beat = max(played)
    winners = [c for c in follow_cards if c.value > to_beat]
    return winners[0] if winners else follow_cards[0]


def _discard(hand: list[Card], rng: random.Random | None) -> Card:
    """Lowest card of the longest suit."""
    groups = group_by_suit(hand)
    longest = max(len(cards) for cards in groups.values())
    candidates = [suit for suit, cards in groups.items() if len(cards) == longest]

    choice = rng.choice if rng else random.choice
    suit = choice(candidates)
    logger.debug(f"Discarding from {suit.value} (longest of {[s.value for s in candidates]})")
    return sort_cards(groups[suit])[0]
