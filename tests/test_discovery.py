"""Tests for the scoreboard walker and game id discovery."""

from datetime import date

from wbb_ratings.data.ingestion.discovery import (
    GameDiscoveryWalker,
    extract_game_ids,
    incremental_range,
    iter_dates,
)
from wbb_ratings.data.scrapers.ncaa_api import UpstreamPermanentError


class StubScoreboardClient:
    def __init__(self, boards, failing_days=()):
        self.boards = boards
        self.failing_days = set(failing_days)
        self.requested = []

    def fetch_scoreboard(self, day, sport="basketball-women", division="d1"):
        self.requested.append((day, sport, division))
        if day in self.failing_days:
            raise UpstreamPermanentError(f"/scoreboard/{day}", status=404)
        return self.boards.get(day, {"games": []})


def board(*game_ids):
    return {"games": [{"game": {"url": f"/game/{gid}", "gameID": gid}} for gid in game_ids]}


def test_extract_game_ids_finds_nested_urls_in_order():
    payload = {
        "games": [
            {"game": {"url": "/game/6458217", "title": "A vs B"}},
            {"game": {"url": "https://www.ncaa.com/game/6458300/boxscore"}},
            {"links": ["/game/6458217", "/schools/alpha"]},
        ],
        "inputMD5Sum": "abc",
    }
    assert extract_game_ids(payload) == ["6458217", "6458300"]


def test_extract_game_ids_ignores_non_numeric_refs():
    assert extract_game_ids({"url": "/game/preview"}) == []
    assert extract_game_ids(None) == []


def test_iter_dates_is_inclusive():
    days = list(iter_dates(date(2025, 11, 30), date(2025, 12, 2)))
    assert days == [date(2025, 11, 30), date(2025, 12, 1), date(2025, 12, 2)]


def test_incremental_range_covers_last_n_days():
    assert incremental_range(date(2026, 1, 10), 2) == (date(2026, 1, 9), date(2026, 1, 10))
    assert incremental_range(date(2026, 1, 10), 0) == (date(2026, 1, 10), date(2026, 1, 10))


def test_walker_skips_processed_and_repeated_ids():
    d1, d2 = date(2025, 11, 3), date(2025, 11, 4)
    client = StubScoreboardClient({d1: board("1", "2", "3"), d2: board("3", "4")})
    walker = GameDiscoveryWalker(client, processed_ids={"2"})

    discovered = list(walker.walk(d1, d2))

    assert [(d.day, d.game_ids) for d in discovered] == [(d1, ["1", "3"]), (d2, ["4"])]
    assert walker.games_found == 3
    assert walker.already_processed == 1
    assert walker.days_walked == 2


def test_walker_skips_failed_day_and_continues():
    d1, d2, d3 = date(2025, 11, 3), date(2025, 11, 4), date(2025, 11, 5)
    client = StubScoreboardClient({d1: board("10"), d3: board("30")}, failing_days={d2})
    walker = GameDiscoveryWalker(client)

    discovered = list(walker.walk(d1, d3))

    assert [d.day for d in discovered] == [d1, d3]
    assert walker.failed_days == [d2]
    assert [r[0] for r in client.requested] == [d1, d2, d3]


def test_walker_passes_sport_and_division():
    client = StubScoreboardClient({})
    walker = GameDiscoveryWalker(client, sport="basketball-men", division="d2")
    list(walker.walk(date(2025, 11, 3), date(2025, 11, 3)))
    assert client.requested == [(date(2025, 11, 3), "basketball-men", "d2")]


def test_empty_range_requests_nothing():
    client = StubScoreboardClient({})
    walker = GameDiscoveryWalker(client)
    assert list(walker.walk(date(2025, 11, 5), date(2025, 11, 4))) == []
    assert client.requested == []
