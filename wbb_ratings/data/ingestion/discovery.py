"""Day-by-day scoreboard walk that discovers new game identifiers."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Iterable, Iterator, List, Optional, Set, Tuple

from ..scrapers.ncaa_api import FetchError, NCAAApiClient

logger = logging.getLogger(__name__)

GAME_REF_PATTERN = re.compile(r"/game/(\d+)")


def extract_game_ids(payload: Any) -> List[str]:
    """Find every ``/game/<id>`` reference in any string of the payload, in first-seen order."""
    seen: Set[str] = set()
    ordered: List[str] = []
    stack = [payload]
    while stack:
        cur = stack.pop()
        if isinstance(cur, dict):
            stack.extend(reversed(list(cur.values())))
        elif isinstance(cur, list):
            stack.extend(reversed(cur))
        elif isinstance(cur, str):
            for game_id in GAME_REF_PATTERN.findall(cur):
                if game_id not in seen:
                    seen.add(game_id)
                    ordered.append(game_id)
    return ordered


def iter_dates(start: date, end: date) -> Iterator[date]:
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def incremental_range(end: date, days: int) -> Tuple[date, date]:
    """The last ``days`` calendar days ending at ``end`` (inclusive)."""
    return end - timedelta(days=max(1, days) - 1), end


@dataclass
class DiscoveredDay:
    day: date
    game_ids: List[str] = field(default_factory=list)


class GameDiscoveryWalker:
    """
    Walks a closed date range and yields, per day, game ids not seen before.

    Ids already in ``processed_ids`` or already yielded earlier in this walk
    are dropped before any box score is requested. A day whose scoreboard
    cannot be fetched is skipped and recorded in ``failed_days``.
    """

    def __init__(
        self,
        client: NCAAApiClient,
        processed_ids: Optional[Iterable[str]] = None,
        sport: str = "basketball-women",
        division: str = "d1",
        progress_every: int = 7,
        max_logged_failures: int = 50,
    ):
        self.client = client
        self.processed_ids: Set[str] = set(processed_ids or ())
        self.sport = sport
        self.division = division
        self.progress_every = progress_every
        self.max_logged_failures = max_logged_failures

        self.seen_ids: Set[str] = set()
        self.failed_days: List[date] = []
        self.days_walked = 0
        self.games_found = 0
        self.already_processed = 0

    def walk(self, start: date, end: date) -> Iterator[DiscoveredDay]:
        for day in iter_dates(start, end):
            self.days_walked += 1
            if self.progress_every and self.days_walked % self.progress_every == 1:
                logger.info("DATE %s", day.isoformat())

            try:
                scoreboard = self.client.fetch_scoreboard(day, sport=self.sport, division=self.division)
            except FetchError as exc:
                self.failed_days.append(day)
                if len(self.failed_days) <= self.max_logged_failures:
                    logger.warning("Scoreboard fetch failed for %s: %s", day.isoformat(), exc)
                continue

            new_ids = []
            for game_id in extract_game_ids(scoreboard):
                if game_id in self.seen_ids:
                    continue
                if game_id in self.processed_ids:
                    self.already_processed += 1
                    self.seen_ids.add(game_id)
                    continue
                new_ids.append(game_id)
                self.seen_ids.add(game_id)

            if not new_ids:
                continue
            self.games_found += len(new_ids)
            logger.info("games on %s = %d", day.isoformat(), len(new_ids))
            yield DiscoveredDay(day=day, game_ids=new_ids)
