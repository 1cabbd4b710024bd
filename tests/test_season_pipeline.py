"""End-to-end tests for the season ingestion pipeline with a stubbed API."""

import json
from datetime import date

import pytest

from wbb_ratings.data.ingestion.season_pipeline import (
    InsufficientCoverageError,
    SeasonIngestionConfig,
    SeasonIngestionPipeline,
)
from wbb_ratings.data.ingestion.state_store import TEAM_STATS_FILE, IncrementalStateStore
from wbb_ratings.data.scrapers.ncaa_api import UpstreamPermanentError

DAY1 = date(2025, 11, 3)
DAY2 = date(2025, 11, 4)


def box(home_id, away_id, home_pts, away_pts):
    def stats(points, fga, fta, orb, tov):
        return {
            "points": points,
            "fieldGoalsAttempted": fga,
            "freeThrowsAttempted": fta,
            "offensiveRebounds": orb,
            "defensiveRebounds": 24,
            "turnovers": tov,
        }

    return {
        "teams": [
            {"teamId": home_id, "nameShort": home_id.upper(), "isHome": True},
            {"teamId": away_id, "nameShort": away_id.upper(), "isHome": False},
        ],
        "teamBoxscore": [
            {"teamId": home_id, "teamStats": stats(home_pts, 60, 15, 10, 12)},
            {"teamId": away_id, "teamStats": stats(away_pts, 55, 18, 8, 14)},
        ],
    }


def scoreboard(*game_ids):
    return {"games": [{"game": {"url": f"/game/{gid}"}} for gid in game_ids]}


class StubClient:
    def __init__(self, boards, boxes):
        self.boards = boards
        self.boxes = boxes
        self.box_requests = []

    def fetch_scoreboard(self, day, sport="basketball-women", division="d1"):
        return self.boards.get(day, {"games": []})

    def fetch_boxscore(self, game_id):
        self.box_requests.append(game_id)
        item = self.boxes[game_id]
        if isinstance(item, Exception):
            raise item
        return item


def run_pipeline(tmp_path, client, mode="full", end=DAY2, min_teams=2, **overrides):
    sleeps = []
    config = SeasonIngestionConfig(
        season_start=DAY1,
        end_date=end,
        mode=mode,
        output_dir=str(tmp_path),
        min_teams_required=min_teams,
        box_concurrency=2,
        **overrides,
    )
    pipeline = SeasonIngestionPipeline(config, client=client, sleep=sleeps.append)
    return pipeline.run(), sleeps


def test_full_run_folds_games_and_persists(tmp_path):
    client = StubClient(
        {DAY1: scoreboard("1"), DAY2: scoreboard("2")},
        {"1": box("a", "b", 70, 65), "2": box("c", "d", 61, 80)},
    )
    summary, sleeps = run_pipeline(tmp_path, client, min_teams=4)

    assert summary.persisted
    assert (summary.games_found, summary.games_parsed, summary.games_failed) == (2, 2, 0)
    assert summary.success_rate == 1.0
    assert summary.teams == 4
    assert sleeps == [0.4, 0.4]

    state = IncrementalStateStore(str(tmp_path)).load_state()
    assert state.processed_ids == {"1", "2"}
    assert state.teams["d"].wins == 1
    assert set(state.game_log) == {"1", "2"}
    ratings = json.loads((tmp_path / "ratings.json").read_text())
    assert [row["overall_rank"] for row in ratings["rows"]] == [1, 2, 3, 4]


def test_rerun_does_not_refold_processed_game(tmp_path):
    client = StubClient({DAY1: scoreboard("123")}, {"123": box("a", "b", 70, 65)})
    run_pipeline(tmp_path, client, end=DAY1)

    summary, _ = run_pipeline(tmp_path, client, mode="incremental", end=DAY1)

    state = IncrementalStateStore(str(tmp_path)).load_state()
    assert state.teams["a"].games == 1
    assert state.teams["b"].games == 1
    assert summary.games_parsed == 0
    assert summary.already_processed == 1
    assert client.box_requests == ["123"]


def test_incremental_run_unions_with_stored_state(tmp_path):
    client = StubClient(
        {DAY1: scoreboard("1"), DAY2: scoreboard("2")},
        {"1": box("a", "b", 70, 65), "2": box("a", "c", 50, 66)},
    )
    run_pipeline(tmp_path, client, end=DAY1)

    summary, _ = run_pipeline(tmp_path, client, mode="incremental", end=DAY2, incremental_days=1)

    assert (summary.start, summary.end) == ("2025-11-04", "2025-11-04")
    state = IncrementalStateStore(str(tmp_path)).load_state()
    assert state.processed_ids == {"1", "2"}
    a = state.teams["a"]
    assert (a.games, a.wins, a.losses) == (2, 1, 1)
    assert set(state.game_log) == {"1", "2"}


def test_full_run_ignores_stored_state(tmp_path):
    client = StubClient({DAY1: scoreboard("1")}, {"1": box("a", "b", 70, 65)})
    run_pipeline(tmp_path, client, end=DAY1)
    run_pipeline(tmp_path, client, end=DAY1)

    state = IncrementalStateStore(str(tmp_path)).load_state()
    assert state.teams["a"].games == 1


def test_unparseable_and_failed_games_are_not_marked_processed(tmp_path):
    client = StubClient(
        {DAY1: scoreboard("1", "2", "3", "4")},
        {
            "1": box("a", "b", 70, 65),
            "2": {"status": "final", "meta": {"title": "no teams here"}},
            "3": UpstreamPermanentError("/game/3/boxscore", status=404),
            "4": box("c", "d", 60, 60),
        },
    )
    summary, _ = run_pipeline(tmp_path, client, end=DAY1)

    reasons = {m.game_id: m.reason for m in summary.missing}
    assert reasons == {"2": "unparseable", "3": "fetch_http", "4": "tie"}
    assert summary.games_failed == 3
    state = IncrementalStateStore(str(tmp_path)).load_state()
    assert state.processed_ids == {"1"}
    assert set(state.teams) == {"a", "b"}


def test_unexpected_worker_error_is_reported_not_raised(tmp_path):
    client = StubClient(
        {DAY1: scoreboard("1", "2")},
        {"1": box("a", "b", 70, 65), "2": RuntimeError("boom")},
    )
    summary, _ = run_pipeline(tmp_path, client, end=DAY1)

    assert [(m.game_id, m.reason) for m in summary.missing] == [("2", "error")]
    assert summary.persisted


def test_sanity_floor_refuses_to_overwrite_state(tmp_path):
    client = StubClient(
        {DAY1: scoreboard("1"), DAY2: scoreboard("2")},
        {"1": box("a", "b", 70, 65), "2": box("c", "d", 61, 80)},
    )
    run_pipeline(tmp_path, client, end=DAY1)
    before = (tmp_path / TEAM_STATS_FILE).read_text()

    with pytest.raises(InsufficientCoverageError):
        run_pipeline(tmp_path, client, mode="incremental", end=DAY2, min_teams=300)

    assert (tmp_path / TEAM_STATS_FILE).read_text() == before


def test_audit_and_dry_run_write_nothing(tmp_path):
    client = StubClient({DAY1: scoreboard("1", "2")}, {"1": box("a", "b", 70, 65), "2": {}})

    audit, _ = run_pipeline(tmp_path, client, mode="audit", end=DAY1)
    dry, _ = run_pipeline(tmp_path, client, end=DAY1, dry_run=True)

    assert [m.game_id for m in audit.missing] == ["2"]
    assert not audit.persisted and not dry.persisted
    assert dry.games_parsed == 1
    assert list(tmp_path.iterdir()) == []


def test_unknown_mode_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        SeasonIngestionPipeline(SeasonIngestionConfig(mode="weekly"), client=StubClient({}, {}))


def test_incremental_range_is_clamped_to_season_start():
    config = SeasonIngestionConfig(season_start=DAY2, end_date=DAY2, mode="incremental", incremental_days=5)
    pipeline = SeasonIngestionPipeline(config, client=StubClient({}, {}), store=IncrementalStateStore("unused"))
    assert pipeline.date_range() == (DAY2, DAY2)


def test_summary_to_dict_lists_missing_games(tmp_path):
    client = StubClient({DAY1: scoreboard("9")}, {"9": {}})
    summary, _ = run_pipeline(tmp_path, client, mode="audit", end=DAY1)

    payload = summary.to_dict()
    assert payload["missing"] == [{"game_id": "9", "date": "2025-11-03", "reason": "unparseable"}]
    assert payload["success_rate"] == 0.0
