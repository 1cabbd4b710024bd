"""Domain models."""

from .game import GameBoxScore, PlayerGameLine, StatTotals, TeamGameLine, STAT_FIELDS
from .player import PlayerSeasonAggregate
from .team import RatingsRow, TeamSeasonAggregate

__all__ = [
    "GameBoxScore",
    "PlayerGameLine",
    "PlayerSeasonAggregate",
    "RatingsRow",
    "STAT_FIELDS",
    "StatTotals",
    "TeamGameLine",
    "TeamSeasonAggregate",
]
