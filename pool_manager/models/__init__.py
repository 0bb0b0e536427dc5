from pool_manager.models.match import Match
from pool_manager.models.player import Player
from pool_manager.models.tournament import Tournament

__all__ = [
    "Player",
    "Tournament",
    "Match",
]
