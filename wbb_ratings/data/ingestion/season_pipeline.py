"""Season ingestion pipeline: discover games, fetch box scores, fold, publish."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from ..boxscore_extractor import extract_game
from ..features.aggregation import FoldRejectedError, SeasonAggregator, TiedGameError
from ..features.efficiency_metrics import (
    build_ratings_rows,
    player_stats_rows,
    ratings_payload_rows,
    team_stats_rows,
)
from ..scrapers.ncaa_api import ApiClientConfig, FetchError, NCAAApiClient
from ...models.game import GameBoxScore
from .discovery import GameDiscoveryWalker, incremental_range
from .state_store import IncrementalStateStore, SeasonState
from .validators import validate_games_payload, validate_ratings_payload, validate_team_stats_payload

logger = logging.getLogger(__name__)

MODES = ("full", "incremental", "audit")


class InsufficientCoverageError(RuntimeError):
    """The run produced fewer teams than the sanity floor; nothing was saved."""


class PayloadValidationError(RuntimeError):
    """Aggregates failed schema checks before publication; nothing was saved."""


@dataclass
class SeasonIngestionConfig:
    """Configuration for one pipeline run."""

    season_start: date = date(2025, 11, 1)
    end_date: Optional[date] = None  # defaults to today (UTC)
    mode: str = "full"
    incremental_days: int = 2
    output_dir: str = "public/data"
    sport: str = "basketball-women"
    division: str = "d1"

    box_concurrency: int = 4
    box_delay_seconds: float = 0.4
    request_timeout_seconds: float = 20.0
    request_retries: int = 3
    retry_delay_seconds: float = 0.4
    not_ready_delay_seconds: float = 2.0
    network_retry_delay_seconds: float = 0.5

    min_teams_required: int = 300
    dry_run: bool = False
    max_logged_parse_failures: int = 10

    def api_config(self) -> ApiClientConfig:
        return ApiClientConfig(
            timeout_seconds=self.request_timeout_seconds,
            retries=self.request_retries,
            retry_delay_seconds=self.retry_delay_seconds,
            not_ready_delay_seconds=self.not_ready_delay_seconds,
            network_retry_delay_seconds=self.network_retry_delay_seconds,
        )


@dataclass
class MissingGame:
    game_id: str
    date: str
    reason: str

    def to_dict(self) -> dict:
        return {"game_id": self.game_id, "date": self.date, "reason": self.reason}


@dataclass
class BoxScoreResult:
    """What one worker hands back to the coordinating loop."""

    game_id: str
    date: str
    game: Optional[GameBoxScore] = None
    failure: Optional[str] = None


@dataclass
class IngestionSummary:
    mode: str
    start: str
    end: str
    days_walked: int = 0
    failed_days: List[str] = field(default_factory=list)
    games_found: int = 0
    games_parsed: int = 0
    games_failed: int = 0
    already_processed: int = 0
    teams: int = 0
    players: int = 0
    processed_total: int = 0
    persisted: bool = False
    artifacts: Dict[str, str] = field(default_factory=dict)
    missing: List[MissingGame] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if not self.games_found:
            return 0.0
        return self.games_parsed / self.games_found

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "start": self.start,
            "end": self.end,
            "days_walked": self.days_walked,
            "failed_days": self.failed_days,
            "games_found": self.games_found,
            "games_parsed": self.games_parsed,
            "games_failed": self.games_failed,
            "already_processed": self.already_processed,
            "success_rate": self.success_rate,
            "teams": self.teams,
            "players": self.players,
            "processed_total": self.processed_total,
            "persisted": self.persisted,
            "artifacts": self.artifacts,
            "missing": [m.to_dict() for m in self.missing],
        }


class SeasonIngestionPipeline:
    """
    One pipeline for full rebuilds, incremental updates and missing-game audits.

    Box scores are fetched by a bounded thread pool. Workers only fetch and
    parse; every fold, and every check against the processed-game index,
    happens afterwards on the calling thread, so aggregates need no locking.
    A game id is marked processed only after both teams were folded.

    Usage:
        config = SeasonIngestionConfig(mode="incremental")
        summary = SeasonIngestionPipeline(config).run()
    """

    def __init__(
        self,
        config: Optional[SeasonIngestionConfig] = None,
        client: Optional[NCAAApiClient] = None,
        store: Optional[IncrementalStateStore] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or SeasonIngestionConfig()
        if self.config.mode not in MODES:
            raise ValueError(f"mode must be one of {', '.join(MODES)}; got {self.config.mode!r}")
        self.client = client or NCAAApiClient(self.config.api_config())
        self.store = store or IncrementalStateStore(self.config.output_dir)
        self._sleep = sleep
        self._logged_parse_failures = 0

    def date_range(self) -> Tuple[date, date]:
        end = self.config.end_date or datetime.now(timezone.utc).date()
        if self.config.mode == "incremental":
            start, end = incremental_range(end, self.config.incremental_days)
            return max(start, self.config.season_start), end
        return self.config.season_start, end

    def run(self) -> IngestionSummary:
        start, end = self.date_range()
        if start > end:
            raise ValueError("season_start must be <= end_date")

        state = SeasonState() if self.config.mode == "full" else self.store.load_state()
        aggregator = SeasonAggregator(state.teams, state.players)
        walker = GameDiscoveryWalker(
            self.client,
            processed_ids=state.processed_ids,
            sport=self.config.sport,
            division=self.config.division,
        )
        summary = IngestionSummary(mode=self.config.mode, start=start.isoformat(), end=end.isoformat())

        with ThreadPoolExecutor(max_workers=max(1, self.config.box_concurrency)) as executor:
            for discovered in walker.walk(start, end):
                for result in self._fetch_day(executor, discovered.day, discovered.game_ids):
                    self._apply(result, aggregator, state, summary)

        summary.days_walked = walker.days_walked
        summary.failed_days = [d.isoformat() for d in walker.failed_days]
        summary.games_found = walker.games_found
        summary.already_processed += walker.already_processed
        summary.teams = len(aggregator.teams)
        summary.players = len(aggregator.players)
        summary.processed_total = len(state.processed_ids)

        logger.info(
            "Walk complete: days=%d gamesFound=%d parsed=%d failed=%d",
            summary.days_walked,
            summary.games_found,
            summary.games_parsed,
            summary.games_failed,
        )

        if self.config.mode == "audit" or self.config.dry_run:
            return summary

        self._persist(aggregator, state, summary)
        return summary

    def _fetch_day(self, executor: ThreadPoolExecutor, day: date, game_ids: List[str]) -> Iterator[BoxScoreResult]:
        day_str = day.isoformat()
        futures = {executor.submit(self._fetch_and_extract, gid, day_str): gid for gid in game_ids}
        for future in as_completed(futures):
            game_id = futures[future]
            try:
                yield future.result()
            except Exception:
                logger.exception("Unexpected failure processing game %s", game_id)
                yield BoxScoreResult(game_id=game_id, date=day_str, failure="error")

    def _fetch_and_extract(self, game_id: str, day: str) -> BoxScoreResult:
        try:
            box = self.client.fetch_boxscore(game_id)
        except FetchError as exc:
            return BoxScoreResult(game_id=game_id, date=day, failure=f"fetch_{exc.kind}")
        finally:
            # Spacing between box-score requests, success or not.
            self._sleep(self.config.box_delay_seconds)

        game = extract_game(game_id, box, day)
        if game is None:
            return BoxScoreResult(game_id=game_id, date=day, failure="unparseable")
        return BoxScoreResult(game_id=game_id, date=day, game=game)

    def _apply(
        self,
        result: BoxScoreResult,
        aggregator: SeasonAggregator,
        state: SeasonState,
        summary: IngestionSummary,
    ) -> None:
        if result.game_id in state.processed_ids:
            summary.already_processed += 1
            return
        if result.game is None:
            self._record_failure(result.game_id, result.date, result.failure or "unknown", summary)
            return

        try:
            aggregator.fold(result.game)
        except TiedGameError as exc:
            logger.warning("%s", exc)
            self._record_failure(result.game_id, result.date, "tie", summary)
            return
        except FoldRejectedError as exc:
            logger.warning("%s", exc)
            self._record_failure(result.game_id, result.date, "invalid", summary)
            return

        state.processed_ids.add(result.game_id)
        state.game_log[result.game_id] = result.game.to_dict()
        summary.games_parsed += 1

    def _record_failure(self, game_id: str, day: str, reason: str, summary: IngestionSummary) -> None:
        summary.games_failed += 1
        summary.missing.append(MissingGame(game_id=game_id, date=day, reason=reason))
        if self._logged_parse_failures < self.config.max_logged_parse_failures:
            self._logged_parse_failures += 1
            logger.warning("Game %s on %s not folded: %s", game_id, day, reason)

    def _persist(self, aggregator: SeasonAggregator, state: SeasonState, summary: IngestionSummary) -> None:
        team_count = len(aggregator.teams)
        if team_count < self.config.min_teams_required:
            raise InsufficientCoverageError(
                f"only {team_count} teams aggregated (minimum {self.config.min_teams_required}); "
                "keeping the last saved state"
            )

        ratings = ratings_payload_rows(build_ratings_rows(aggregator.teams))
        team_rows = team_stats_rows(aggregator.teams)
        game_entries = list(state.game_log.values())

        errors = validate_team_stats_payload(
            {"teams": team_rows},
            min_unique_team_ids=self.config.min_teams_required,
        )
        errors += validate_ratings_payload(
            {"rows": ratings},
            min_unique_team_ids=self.config.min_teams_required,
            variance_fields=["adj_em"] if len(ratings) > 1 else None,
        )
        errors += validate_games_payload({"games": game_entries})
        if errors:
            raise PayloadValidationError("Refusing to save season state:\n- " + "\n- ".join(errors[:20]))

        summary.artifacts = self.store.save(
            aggregator.teams,
            state.processed_ids,
            game_log=state.game_log,
            players=aggregator.players,
            ratings_rows=ratings,
            team_rows=team_rows,
            player_rows=player_stats_rows(aggregator.players, aggregator.teams),
            season_start=self.config.season_start.isoformat(),
        )
        summary.persisted = True
