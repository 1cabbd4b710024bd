"""Schema validators for published season artifacts."""

from __future__ import annotations

import math
from typing import Dict, List, Optional

from ...models.game import STAT_FIELDS


def _to_float(value) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def validate_team_stats_payload(payload: Dict, min_unique_team_ids: int = 1) -> List[str]:
    errors: List[str] = []
    teams = payload.get("teams")
    if not isinstance(teams, list) or not teams:
        return ["team stats payload must include non-empty 'teams' list"]

    counters = ["games", "wins", "losses"] + list(STAT_FIELDS) + [f"opp_{name}" for name in STAT_FIELDS]
    team_ids = set()
    for idx, row in enumerate(teams):
        if not isinstance(row, dict):
            errors.append(f"teams[{idx}] must be an object")
            continue
        missing = [k for k in ("team_id", "team_name", "games", "wins", "losses") if k not in row]
        if missing:
            errors.append(f"teams[{idx}] missing fields: {', '.join(missing)}")
            continue
        team_ids.add(str(row["team_id"]))

        negative = [k for k in counters if (_to_float(row.get(k)) or 0.0) < 0]
        if negative:
            errors.append(f"teams[{idx}] has negative counters: {', '.join(negative)}")
        if row["games"] != row["wins"] + row["losses"]:
            errors.append(f"teams[{idx}] games != wins + losses")
        if (row.get("trb") or 0) < (row.get("orb") or 0):
            errors.append(f"teams[{idx}] total rebounds below offensive rebounds")

    if len(team_ids) < min_unique_team_ids:
        errors.append(
            f"team stats payload must include at least {min_unique_team_ids} unique teams; got {len(team_ids)}"
        )
    return errors


def validate_ratings_payload(
    payload: Dict,
    required_numeric_fields: Optional[List[str]] = None,
    min_unique_team_ids: int = 1,
    variance_fields: Optional[List[str]] = None,
) -> List[str]:
    errors: List[str] = []
    rows = payload.get("rows")
    if not isinstance(rows, list) or not rows:
        return ["ratings payload must include non-empty 'rows' list"]

    required_numeric_fields = required_numeric_fields or ["adj_o", "adj_d", "adj_em", "adj_t"]
    field_values: Dict[str, List[float]] = {field: [] for field in (variance_fields or [])}
    team_ids = set()
    for idx, row in enumerate(rows):
        if not isinstance(row, dict):
            errors.append(f"rows[{idx}] must be an object")
            continue
        if "team_id" not in row:
            errors.append(f"rows[{idx}] missing fields: team_id")
            continue
        team_ids.add(str(row["team_id"]))

        for field in required_numeric_fields:
            val = _to_float(row.get(field))
            if val is None or not math.isfinite(val):
                errors.append(f"rows[{idx}] missing/invalid numeric field '{field}'")

        for field in field_values:
            val = _to_float(row.get(field))
            if val is not None:
                field_values[field].append(val)

    if len(team_ids) < min_unique_team_ids:
        errors.append(
            f"ratings payload must include at least {min_unique_team_ids} unique teams; got {len(team_ids)}"
        )

    for field, values in field_values.items():
        uniques = {round(v, 6) for v in values}
        if len(uniques) <= 1:
            errors.append(f"ratings field '{field}' has insufficient variance")
    return errors


def validate_games_payload(payload: Dict) -> List[str]:
    errors: List[str] = []
    games = payload.get("games")
    if not isinstance(games, list):
        return ["games payload must include a 'games' list"]

    seen = set()
    for idx, row in enumerate(games):
        if not isinstance(row, dict):
            errors.append(f"games[{idx}] must be an object")
            continue
        game_id = row.get("game_id")
        if not game_id:
            errors.append(f"games[{idx}] missing game id")
        elif game_id in seen:
            errors.append(f"games[{idx}] duplicates game id {game_id}")
        else:
            seen.add(game_id)
        for side in ("home", "away"):
            line = row.get(side)
            if not isinstance(line, dict) or not line.get("team_id"):
                errors.append(f"games[{idx}] missing {side} team")
    return errors
