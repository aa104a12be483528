"""New game construction."""

import logging
import random

from trickroom_server.models.card import TWO_OF_CLUBS
from trickroom_server.models.game_state import GameState, GameStatus
from trickroom_server.models.player import VOICE_UID_BASE, Participant, Player

from .deck import create_deck, deal_cards

logger = logging.getLogger(__name__)


def setup_new_game(
    participants: list[Participant],
    game_id: str,
    max_players: int,
    rng: random.Random | None = None,
) -> GameState:
    """Create a dealt game from a room's participants.

    The holder of the two of clubs leads the first trick. If nobody holds
    it (possible with 3 players), the host leads, or the first participant
    when there is no host.

    Args:
        participants: Room participants in seat order
        game_id: Identifier for the new game
        max_players: Room capacity (2-4)
        rng: Random source for the shuffle

    Returns:
        GameState with status PLAYING
    """
    if not participants:
        raise ValueError("Cannot start a game without participants")

    hands = deal_cards(create_deck(rng), len(participants))

    players = [
        Player(
            **participant.model_dump(include=set(Participant.model_fields)),
            hand=hands[index],
            tricks_won=0,
            voice_uid=VOICE_UID_BASE + index,
        )
        for index, participant in enumerate(participants)
    ]

    host = next((p for p in players if p.is_host), None)
    host_id = host.id if host else players[0].id

    starting_player_id = host_id
    for player in players:
        if player.holds(TWO_OF_CLUBS):
            starting_player_id = player.id
            break

    # Rotate seat order so the starting player leads
    turn_order = [p.id for p in players]
    start = turn_order.index(starting_player_id)
    turn_order = turn_order[start:] + turn_order[:start]

    state = GameState(
        id=game_id,
        players=players,
        deck=[],
        current_trick=[],
        lead_suit=None,
        current_player_id=starting_player_id,
        turn_order=turn_order,
        round=1,
        trick_number=1,
        host_id=host_id,
        max_players=max_players,
    )
    state.set_status(GameStatus.PLAYING)

    logger.info(
        f"Game {game_id} set up for {len(players)} players, "
        f"{len(hands[0])} cards each, first player: {starting_player_id}"
    )
    return state
