"""Persisted season state: aggregates, processed game ids and the game log."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ...models.player import PlayerSeasonAggregate
from ...models.team import TeamSeasonAggregate

logger = logging.getLogger(__name__)

TEAM_STATS_FILE = "team_stats.json"
GAMES_CACHE_FILE = "games_cache.json"
GAME_LOG_FILE = "games.json"
RATINGS_FILE = "ratings.json"
PLAYER_STATS_FILE = "player_stats.json"


@dataclass
class SeasonState:
    teams: Dict[str, TeamSeasonAggregate] = field(default_factory=dict)
    players: Dict[str, PlayerSeasonAggregate] = field(default_factory=dict)
    processed_ids: Set[str] = field(default_factory=set)
    game_log: Dict[str, dict] = field(default_factory=dict)
    generated_at: Optional[str] = None


def atomic_write_json(path: Path, payload) -> None:
    """Write JSON to a temp file in the same directory, then rename over ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(payload, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class IncrementalStateStore:
    """
    Loads and saves season state under one directory.

    ``team_stats.json`` is the commit point: it carries the team and player
    aggregates together with the processed game ids, so the three can never
    disagree. The other files are published views written around it. On load
    the game log is filtered to committed ids, so a crash between writes
    cannot cause a game to be folded twice.
    """

    def __init__(self, output_dir: str = "public/data"):
        self.output_dir = Path(output_dir)

    def path(self, filename: str) -> Path:
        return self.output_dir / filename

    def load(self) -> Tuple[Dict[str, TeamSeasonAggregate], Set[str]]:
        state = self.load_state()
        return state.teams, state.processed_ids

    def load_state(self) -> SeasonState:
        team_doc = self._read_json(TEAM_STATS_FILE)
        if not isinstance(team_doc, dict):
            return SeasonState()

        try:
            teams = {}
            for row in team_doc.get("teams") or []:
                team = TeamSeasonAggregate.from_dict(row)
                teams[team.team_id] = team
            players = {}
            for row in team_doc.get("players") or []:
                player = PlayerSeasonAggregate.from_dict(row)
                players[player.key] = player
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Malformed %s (%s); starting from empty state", TEAM_STATS_FILE, exc)
            return SeasonState()

        raw_ids = team_doc.get("processed_game_ids")
        if raw_ids is None:
            cache_doc = self._read_json(GAMES_CACHE_FILE)
            raw_ids = cache_doc.get("game_ids") if isinstance(cache_doc, dict) else None
        if not isinstance(raw_ids, list):
            if teams:
                logger.warning("No processed game ids alongside %d teams; starting from empty state", len(teams))
                return SeasonState()
            raw_ids = []
        processed_ids = {str(gid) for gid in raw_ids}

        game_log: Dict[str, dict] = {}
        log_doc = self._read_json(GAME_LOG_FILE)
        if isinstance(log_doc, dict):
            for entry in log_doc.get("games") or []:
                if not isinstance(entry, dict):
                    continue
                game_id = str(entry.get("game_id", ""))
                if game_id in processed_ids:
                    game_log[game_id] = entry

        return SeasonState(
            teams=teams,
            players=players,
            processed_ids=processed_ids,
            game_log=game_log,
            generated_at=team_doc.get("generated_at_utc"),
        )

    def save(
        self,
        teams: Dict[str, TeamSeasonAggregate],
        processed_ids: Iterable[str],
        game_log: Optional[Dict[str, dict]] = None,
        players: Optional[Dict[str, PlayerSeasonAggregate]] = None,
        ratings_rows: Optional[List[dict]] = None,
        team_rows: Optional[List[dict]] = None,
        player_rows: Optional[List[dict]] = None,
        season_start: Optional[str] = None,
    ) -> Dict[str, str]:
        """
        Persist a complete season state.

        Args:
            teams: Team aggregates keyed by team id
            processed_ids: Every game id folded into ``teams``
            game_log: Game log entries keyed by game id
            players: Player aggregates keyed by ``team_id:player_id``
            ratings_rows: Rows for ratings.json
            team_rows: Team rows (with derived report) for team_stats.json;
                plain aggregate dicts are used when omitted
            player_rows: Player rows (with derived metrics) for player_stats.json
            season_start: ISO season start recorded alongside ratings

        Returns:
            Mapping of artifact name to written path
        """
        generated_at = datetime.now(timezone.utc).isoformat()
        ids = sorted({str(gid) for gid in processed_ids})
        players = players or {}
        out: Dict[str, str] = {}

        if game_log is not None:
            entries = sorted(game_log.values(), key=lambda g: (str(g.get("date", "")), str(g.get("game_id", ""))))
            out["games_json"] = self._write(
                GAME_LOG_FILE,
                {"generated_at_utc": generated_at, "games": entries},
            )

        if team_rows is None:
            team_rows = [teams[tid].to_dict() for tid in sorted(teams)]
        out["team_stats_json"] = self._write(
            TEAM_STATS_FILE,
            {
                "generated_at_utc": generated_at,
                "season_start": season_start,
                "teams": team_rows,
                "players": [players[key].to_dict() for key in sorted(players)],
                "processed_game_ids": ids,
            },
        )
        out["games_cache_json"] = self._write(
            GAMES_CACHE_FILE,
            {"generated_at_utc": generated_at, "total_games": len(ids), "game_ids": ids},
        )
        if ratings_rows is not None:
            out["ratings_json"] = self._write(
                RATINGS_FILE,
                {"generated_at_utc": generated_at, "season_start": season_start, "rows": ratings_rows},
            )
        if player_rows is not None:
            out["player_stats_json"] = self._write(
                PLAYER_STATS_FILE,
                {"generated_at_utc": generated_at, "players": player_rows},
            )
        return out

    def _write(self, filename: str, payload) -> str:
        path = self.path(filename)
        atomic_write_json(path, payload)
        return str(path)

    def _read_json(self, filename: str):
        path = self.path(filename)
        if not path.exists():
            return None
        try:
            with open(path, "r") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Could not read %s (%s); treating as missing", path, exc)
            return None
