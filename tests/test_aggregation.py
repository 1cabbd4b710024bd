"""Tests for folding games into season aggregates."""

import itertools

import pytest

from wbb_ratings.data.features.aggregation import (
    FoldRejectedError,
    SeasonAggregator,
    TiedGameError,
    compare_team_aggregates,
    fold_game,
    game_sort_key,
    replay_game_log,
    replay_games,
)
from wbb_ratings.models.game import GameBoxScore, PlayerGameLine, StatTotals, TeamGameLine


def make_game(game_id, home, away, home_pts, away_pts, players=()):
    return GameBoxScore(
        game_id=game_id,
        date="2025-11-10",
        home=TeamGameLine(home, home.title(), StatTotals(points=home_pts, fga=60, orb=10, tov=12, fta=15)),
        away=TeamGameLine(away, away.title(), StatTotals(points=away_pts, fga=55, orb=8, tov=14, fta=18)),
        players=tuple(players),
    )


def test_fold_records_both_sides():
    teams = {}
    fold_game(teams, make_game("1", "a", "b", 70, 65))

    a, b = teams["a"], teams["b"]
    assert (a.games, a.wins, a.losses) == (1, 1, 0)
    assert (b.games, b.wins, b.losses) == (1, 0, 1)
    assert a.points == 70 and a.opp_points == 65
    assert b.totals.fga == 55 and b.opp_totals.fga == 60
    assert a.team_name == "A"


def test_fold_is_additive_when_repeated():
    teams = {}
    game = make_game("1", "a", "b", 70, 65)
    fold_game(teams, game)
    fold_game(teams, game)

    assert teams["a"].games == 2
    assert teams["a"].points == 140
    assert teams["a"].games == teams["a"].wins + teams["a"].losses


def test_fold_order_does_not_change_result():
    games = [
        make_game("1", "a", "b", 70, 65),
        make_game("2", "b", "c", 80, 61),
        make_game("3", "c", "a", 59, 58),
        make_game("4", "a", "c", 90, 40),
    ]
    baseline = replay_games(games).teams
    for order in itertools.permutations(games):
        teams = {}
        for game in order:
            fold_game(teams, game)
        assert compare_team_aggregates(baseline, teams) == []


def test_team_name_is_kept_from_first_sighting():
    teams = {}
    fold_game(teams, make_game("1", "a", "b", 70, 65))
    renamed = GameBoxScore(
        game_id="2",
        date="2025-11-11",
        home=TeamGameLine("a", "Alpha State", StatTotals(points=50)),
        away=TeamGameLine("b", "B", StatTotals(points=40)),
    )
    fold_game(teams, renamed)
    assert teams["a"].team_name == "A"


def test_compare_ignores_name_from_fold_order():
    first = make_game("1", "a", "b", 70, 65)
    renamed = GameBoxScore(
        game_id="2",
        date="2025-11-11",
        home=TeamGameLine("a", "Alpha State", StatTotals(points=50)),
        away=TeamGameLine("c", "C", StatTotals(points=40)),
    )
    forward = {}
    fold_game(forward, first)
    fold_game(forward, renamed)
    backward = {}
    fold_game(backward, renamed)
    fold_game(backward, first)

    assert forward["a"].team_name != backward["a"].team_name
    assert compare_team_aggregates(forward, backward) == []


def test_tied_game_is_rejected_without_mutation():
    teams = {}
    fold_game(teams, make_game("1", "a", "b", 70, 65))
    before = {tid: t.to_dict() for tid, t in teams.items()}

    with pytest.raises(TiedGameError):
        fold_game(teams, make_game("2", "a", "c", 60, 60))

    assert {tid: t.to_dict() for tid, t in teams.items()} == before
    assert "c" not in teams


def test_same_team_on_both_sides_is_rejected():
    with pytest.raises(FoldRejectedError):
        fold_game({}, make_game("1", "a", "a", 70, 65))


class TestSeasonAggregator:
    def test_players_fold_with_their_team(self):
        lines = [
            PlayerGameLine("p1", "Ann Lee", "a", StatTotals(points=20, fga=12), minutes=30.0, jersey="5", starter=True),
            PlayerGameLine("p2", "Bo Cruz", "b", StatTotals(points=8, fga=9), minutes=22.5),
            PlayerGameLine("p3", "Stray", "zzz", StatTotals(points=2), minutes=4.0),
        ]
        aggregator = SeasonAggregator()
        aggregator.fold(make_game("1", "a", "b", 70, 65, players=lines))
        aggregator.fold(make_game("2", "a", "b", 71, 66, players=lines[:1]))

        assert aggregator.games_folded == 2
        assert set(aggregator.players) == {"a:p1", "b:p2"}
        ann = aggregator.players["a:p1"]
        assert (ann.games, ann.starts, ann.minutes) == (2, 2, 60.0)
        assert ann.totals.points == 40
        assert ann.team_name == "A"
        assert ann.jersey == "5"

    def test_rejected_game_leaves_players_untouched(self):
        line = PlayerGameLine("p1", "Ann Lee", "a", StatTotals(points=20), minutes=30.0)
        aggregator = SeasonAggregator()
        with pytest.raises(TiedGameError):
            aggregator.fold(make_game("1", "a", "b", 60, 60, players=[line]))
        assert aggregator.players == {}
        assert aggregator.teams == {}
        assert aggregator.games_folded == 0


def test_game_sort_key_orders_numeric_ids_numerically():
    ids = ["100", "9", "abc", "1000"]
    assert sorted(ids, key=game_sort_key) == ["9", "100", "1000", "abc"]


def test_replay_game_log_matches_incremental_fold():
    games = [make_game("2", "b", "c", 80, 61), make_game("1", "a", "b", 70, 65)]
    incremental = SeasonAggregator()
    for game in games:
        incremental.fold(game)

    replayed = replay_game_log(g.to_dict() for g in games)

    assert replayed.games_folded == 2
    assert compare_team_aggregates(incremental.teams, replayed.teams) == []


def test_compare_reports_missing_and_different_teams():
    left = replay_games([make_game("1", "a", "b", 70, 65)]).teams
    right = replay_games([make_game("1", "a", "c", 70, 65)]).teams
    assert compare_team_aggregates(left, right) == ["b", "c"]
