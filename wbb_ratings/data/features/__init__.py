"""Season aggregation and efficiency metrics."""

from .aggregation import FoldRejectedError, SeasonAggregator, TiedGameError, fold_game, replay_game_log, replay_games
from .efficiency_metrics import build_ratings_rows, four_factors, possessions, rank_values, team_report

__all__ = [
    "FoldRejectedError",
    "SeasonAggregator",
    "TiedGameError",
    "build_ratings_rows",
    "fold_game",
    "four_factors",
    "possessions",
    "rank_values",
    "replay_game_log",
    "replay_games",
    "team_report",
]
