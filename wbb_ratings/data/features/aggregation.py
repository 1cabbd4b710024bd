"""Season aggregation: fold parsed games into per-team and per-player totals."""

from __future__ import annotations

from typing import Dict, Iterable, List, MutableMapping, Optional, Tuple

from ...models.game import GameBoxScore
from ...models.player import PlayerSeasonAggregate
from ...models.team import TeamSeasonAggregate


class FoldRejectedError(ValueError):
    """A game that cannot be folded; nothing was mutated."""


class TiedGameError(FoldRejectedError):
    """Both teams finished with the same score."""


def _check_foldable(game: GameBoxScore) -> None:
    if game.home.team_id == game.away.team_id:
        raise FoldRejectedError(f"game {game.game_id} lists team {game.home.team_id} on both sides")
    if game.home.stats.points == game.away.stats.points:
        raise TiedGameError(
            f"game {game.game_id} ended tied at {game.home.stats.points}; refusing to assign a winner"
        )


def fold_game(
    teams: MutableMapping[str, TeamSeasonAggregate],
    game: GameBoxScore,
) -> MutableMapping[str, TeamSeasonAggregate]:
    """
    Add one game to the team aggregates, in place.

    Purely additive: folding the same game twice counts it twice. Callers
    guard against that with the processed-game index. Validation happens
    before any mutation, so on error neither team row has changed.

    Raises:
        TiedGameError: equal final scores
        FoldRejectedError: same team on both sides
    """
    _check_foldable(game)
    for line, opponent in ((game.home, game.away), (game.away, game.home)):
        team = teams.get(line.team_id)
        if team is None:
            team = TeamSeasonAggregate(team_id=line.team_id, team_name=line.team_name)
            teams[line.team_id] = team
        team.record(line.stats, opponent.stats)
    return teams


class SeasonAggregator:
    """Owns the team and player season aggregates for one pipeline run."""

    def __init__(
        self,
        teams: Optional[Dict[str, TeamSeasonAggregate]] = None,
        players: Optional[Dict[str, PlayerSeasonAggregate]] = None,
    ):
        self.teams: Dict[str, TeamSeasonAggregate] = teams if teams is not None else {}
        self.players: Dict[str, PlayerSeasonAggregate] = players if players is not None else {}
        self.games_folded = 0

    def fold(self, game: GameBoxScore) -> None:
        fold_game(self.teams, game)
        names = {game.home.team_id: game.home.team_name, game.away.team_id: game.away.team_name}
        for line in game.players:
            if line.team_id not in names:
                continue
            key = PlayerSeasonAggregate.key_for(line.team_id, line.player_id)
            player = self.players.get(key)
            if player is None:
                player = PlayerSeasonAggregate(
                    player_id=line.player_id,
                    name=line.name,
                    team_id=line.team_id,
                    team_name=names[line.team_id],
                    jersey=line.jersey,
                )
                self.players[key] = player
            player.record(line)
        self.games_folded += 1


def game_sort_key(game_id: str) -> Tuple[int, int, str]:
    """Numeric ids in numeric order, anything else after them lexically."""
    if game_id.isdigit():
        return (0, int(game_id), "")
    return (1, 0, game_id)


def replay_games(games: Iterable[GameBoxScore]) -> SeasonAggregator:
    """Rebuild aggregates from scratch, folding games in game-id order."""
    aggregator = SeasonAggregator()
    for game in sorted(games, key=lambda g: game_sort_key(g.game_id)):
        aggregator.fold(game)
    return aggregator


def replay_game_log(entries: Iterable[dict]) -> SeasonAggregator:
    return replay_games(GameBoxScore.from_dict(entry) for entry in entries)


def _counting_fields(team: TeamSeasonAggregate) -> dict:
    # Display name depends on which game was folded first.
    row = team.to_dict()
    row.pop("team_name", None)
    return row


def compare_team_aggregates(
    expected: Dict[str, TeamSeasonAggregate],
    actual: Dict[str, TeamSeasonAggregate],
) -> List[str]:
    """Team ids whose counting stats differ (or exist on one side only)."""
    mismatched = []
    for team_id in sorted(set(expected) | set(actual)):
        left = expected.get(team_id)
        right = actual.get(team_id)
        if left is None or right is None or _counting_fields(left) != _counting_fields(right):
            mismatched.append(team_id)
    return mismatched
