"""Ranking adjustment applied when a match winner is recorded."""

import logging
import os
from typing import Tuple

from sqlmodel import Session

from pool_manager.exceptions import InternalError
from pool_manager.models.match import Match
from pool_manager.models.player import Player

logger = logging.getLogger(__name__)

RANKING_WIN_POINTS = int(os.getenv("RANKING_WIN_POINTS", "1"))
RANKING_LOSS_POINTS = int(os.getenv("RANKING_LOSS_POINTS", "1"))


def adjust_rankings(
    session: Session,
    match: Match,
    win_points: int = RANKING_WIN_POINTS,
    loss_points: int = RANKING_LOSS_POINTS,
) -> Tuple[Player, Player]:
    """
    Reward the winner and penalize the loser of a decided match.

    The loser's ranking is floored at zero. Both players are added to the
    session; the caller commits them together with the match.

    Returns:
        (winner, loser)

    Raises:
        InternalError if a player record is missing or the winner is neither player
    """
    player1 = session.get(Player, match.player1_id)
    player2 = session.get(Player, match.player2_id)
    if player1 is None or player2 is None:
        raise InternalError(f"Players for match {match.id} could not be resolved")

    if match.winner_id == player1.id:
        winner, loser = player1, player2
    elif match.winner_id == player2.id:
        winner, loser = player2, player1
    else:
        raise InternalError(f"Winner {match.winner_id} is not a player in match {match.id}")

    winner.ranking += win_points
    loser.ranking = max(0, loser.ranking - loss_points)
    session.add(winner)
    session.add(loser)

    logger.info(
        "Rankings updated for match %s: winner %s -> %d, loser %s -> %d",
        match.id,
        winner.id,
        winner.ranking,
        loser.id,
        loser.ranking,
    )
    return winner, loser
