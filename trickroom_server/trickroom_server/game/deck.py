"""Deck construction and dealing."""

import logging
import random

from trickroom_server.models.card import Card, full_deck, sort_hand

logger = logging.getLogger(__name__)


def create_deck(rng: random.Random | None = None) -> list[Card]:
    """Create a shuffled 52-card deck.

    Args:
        rng: Random source (module-level random if not provided)

    Returns:
        All 52 cards in random order
    """
    randint = rng.randint if rng else random.randint
    deck = full_deck()

    # Fisher-Yates
    for i in range(len(deck) - 1, 0, -1):
        j = randint(0, i)
        deck[i], deck[j] = deck[j], deck[i]

    return deck


def deal_cards(deck: list[Card], num_players: int) -> list[list[Card]]:
    """Deal cards round-robin into sorted hands.

    Only floor(len(deck) / num_players) * num_players cards are dealt;
    the remainder is discarded.

    Args:
        deck: Cards to deal from (not modified)
        num_players: Number of hands

    Returns:
        One hand per player, sorted by suit then descending rank
    """
    if num_players < 1:
        raise ValueError("num_players must be at least 1")

    hands: list[list[Card]] = [[] for _ in range(num_players)]
    cards_per_player = len(deck) // num_players

    for i in range(cards_per_player * num_players):
        hands[i % num_players].append(deck[i])

    discarded = len(deck) - cards_per_player * num_players
    if discarded:
        logger.debug(f"{discarded} cards left undealt for {num_players} players")

    return [sort_hand(hand) for hand in hands]
