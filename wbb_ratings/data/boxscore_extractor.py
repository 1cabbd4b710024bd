"""
Schema-tolerant box-score extraction.

The upstream box-score payload is not under our control and its field names
drift between records. Every semantic field is resolved from an ordered list
of synonyms, and team/stat blocks are located by walking the whole payload
rather than by fixed paths. Keep all knowledge of upstream field names in
this module.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from ..models.game import STAT_FIELDS, GameBoxScore, PlayerGameLine, StatTotals, TeamGameLine

logger = logging.getLogger(__name__)

TEAM_ID_KEYS = ("teamId", "team_id", "id")
TEAM_NAME_KEYS = ("nameShort", "name_short", "shortName", "nameFull", "name_full", "fullName", "name")
HOME_FLAG_KEYS = ("isHome", "home", "is_home", "homeAway", "home_away")

# Candidate locations of the two-team metadata list, tried in order.
TEAMS_CONTAINER_PATHS: Tuple[Tuple[str, ...], ...] = (
    ("teams",),
    ("game", "teams"),
    ("meta", "teams"),
    ("header", "teams"),
)

STATS_CONTAINER_KEYS = ("teamStats", "team_stats", "statistics", "stats", "totals")
PLAYER_LIST_KEYS = ("playerStats", "players", "player_stats", "roster")

STAT_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "points": ("points", "pts", "score"),
    "fgm": ("fieldGoalsMade", "fgm", "fgMade"),
    "fga": ("fieldGoalsAttempted", "fga", "fgAttempts"),
    "fg3m": ("threePointsMade", "3pm", "threePointersMade", "threePtMade"),
    "fg3a": ("threePointsAttempted", "3pa", "threePointersAttempted", "threePtAttempts"),
    "ftm": ("freeThrowsMade", "ftm", "ftMade"),
    "fta": ("freeThrowsAttempted", "fta", "ftAttempts"),
    "orb": ("offensiveRebounds", "oreb", "offReb", "orb"),
    "drb": ("defensiveRebounds", "dreb", "defReb", "drb"),
    "trb": ("totalRebounds", "treb", "rebounds", "reb", "trb"),
    "ast": ("assists", "ast"),
    "stl": ("steals", "stl"),
    "blk": ("blocks", "blk"),
    "tov": ("turnovers", "tov", "to"),
    "pf": ("fouls", "pf", "personalFouls"),
}

PLAYER_ID_KEYS = ("playerId", "player_id", "id")
PLAYER_NAME_KEYS = ("name", "fullName", "playerName", "displayName")
PLAYER_JERSEY_KEYS = ("jersey", "number", "jerseyNumber", "uniform")
PLAYER_STARTER_KEYS = ("starter", "isStarter", "starting", "gs")
MINUTES_KEYS = ("minutesPlayed", "minutes", "mins", "min")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def pick(obj: Any, keys: Sequence[str]) -> Any:
    """Return the value of the first key present with a non-null value."""
    if not isinstance(obj, dict):
        return None
    for key in keys:
        value = obj.get(key)
        if value is not None:
            return value
    return None


def get_path(obj: Any, path: Sequence[str]) -> Any:
    cur = obj
    for key in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def to_int(value: Any, default: int = 0) -> int:
    """Coerce loosely formatted numbers ("12", 12.0, " 7 pts") to int; never raises."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    match = _LEADING_INT.match(str(value))
    if not match:
        return default
    return int(match.group(1))


def to_minutes(value: Any, default: float = 0.0) -> float:
    """Parse minutes given as a number, a numeric string or ``"mm:ss"``."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else default
    text = str(value).strip()
    if ":" in text:
        mins, _, secs = text.partition(":")
        try:
            return int(mins or 0) + int(secs or 0) / 60.0
        except ValueError:
            return default
    try:
        parsed = float(text)
    except ValueError:
        return default
    return parsed if math.isfinite(parsed) else default


def extract_stat_totals(raw: Any) -> StatTotals:
    """
    Read one totals record from an arbitrarily shaped object.

    Missing fields default to 0. Defensive rebounds missing from the source
    are derived as ``max(0, trb - orb)``; total rebounds are never allowed
    below offensive rebounds.
    """
    values = {name: max(0, to_int(pick(raw, STAT_SYNONYMS[name]))) for name in STAT_FIELDS}
    has_drb = pick(raw, STAT_SYNONYMS["drb"]) is not None
    has_trb = pick(raw, STAT_SYNONYMS["trb"]) is not None

    if not has_trb:
        values["trb"] = values["orb"] + values["drb"]
    if not has_drb:
        values["drb"] = max(0, values["trb"] - values["orb"])
    if values["trb"] < values["orb"]:
        values["trb"] = values["orb"] + values["drb"]
    return StatTotals(**values)


def _walk(node: Any) -> Iterator[Any]:
    """Depth-first, pre-order traversal over every dict and list in the payload."""
    stack = [node]
    while stack:
        cur = stack.pop()
        if isinstance(cur, dict):
            yield cur
            stack.extend(reversed(list(cur.values())))
        elif isinstance(cur, list):
            yield cur
            stack.extend(reversed(cur))


def _team_id(obj: Any) -> Optional[str]:
    value = pick(obj, TEAM_ID_KEYS)
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def _with_team_ids(items: List[Any]) -> List[dict]:
    return [t for t in items if isinstance(t, dict) and _team_id(t) is not None]


def find_teams_meta(payload: Any) -> Optional[List[dict]]:
    """Locate the team metadata list: known containers first, then a full search."""
    for path in TEAMS_CONTAINER_PATHS:
        candidate = get_path(payload, path)
        if isinstance(candidate, list):
            teams = _with_team_ids(candidate)
            if len(teams) >= 2:
                return teams

    for node in _walk(payload):
        if isinstance(node, list):
            teams = _with_team_ids(node)
            if len(teams) >= 2:
                return teams
    return None


def team_name_from_meta(meta: dict) -> str:
    value = pick(meta, TEAM_NAME_KEYS)
    if value is None or isinstance(value, (dict, list)):
        return "Team"
    return str(value)


def is_home_from_meta(meta: dict) -> Optional[bool]:
    value = pick(meta, HOME_FLAG_KEYS)
    if value is True or value is False:
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("home", "h"):
            return True
        if text in ("away", "a"):
            return False
    return None


def resolve_home_away(first: dict, second: dict) -> Tuple[dict, dict]:
    """
    Order two team metadata objects as (home, away).

    Uses the flags when they agree on exactly one home team (a single known
    flag implies the other side); otherwise falls back to listing order.
    """
    flags = (is_home_from_meta(first), is_home_from_meta(second))
    if flags in ((True, False), (True, None), (None, False)):
        return first, second
    if flags in ((False, True), (None, True), (False, None)):
        return second, first
    return first, second


def collect_team_stat_candidates(payload: Any) -> List[Tuple[str, StatTotals]]:
    """Every (team_id, totals) pair found anywhere in the payload, zero blocks dropped."""
    out: List[Tuple[str, StatTotals]] = []
    for node in _walk(payload):
        if not isinstance(node, dict):
            continue
        team_id = _team_id(node)
        if team_id is None:
            continue
        direct = extract_stat_totals(node)
        if not direct.is_empty():
            out.append((team_id, direct))
        nested = pick(node, STATS_CONTAINER_KEYS)
        if isinstance(nested, dict):
            nested_totals = extract_stat_totals(nested)
            if not nested_totals.is_empty():
                out.append((team_id, nested_totals))
    return out


def best_totals_by_team(candidates: List[Tuple[str, StatTotals]]) -> Dict[str, StatTotals]:
    """Keep, per team, the candidate with the largest FGA + FTA (first wins ties)."""
    best: Dict[str, StatTotals] = {}
    for team_id, totals in candidates:
        prev = best.get(team_id)
        if prev is None or totals.shot_volume > prev.shot_volume:
            best[team_id] = totals
    return best


def _player_name(entry: dict) -> Optional[str]:
    name = pick(entry, PLAYER_NAME_KEYS)
    if isinstance(name, str) and name.strip():
        return name.strip()
    first = entry.get("firstName") or entry.get("first_name") or ""
    last = entry.get("lastName") or entry.get("last_name") or ""
    full = f"{first} {last}".strip()
    return full or None


def _is_starter(entry: dict) -> bool:
    value = pick(entry, PLAYER_STARTER_KEYS)
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "y")
    return bool(value)


def extract_player_line(entry: Any, team_id: str) -> Optional[PlayerGameLine]:
    if not isinstance(entry, dict):
        return None
    name = _player_name(entry)
    raw_id = pick(entry, PLAYER_ID_KEYS)
    jersey = pick(entry, PLAYER_JERSEY_KEYS)
    if raw_id is None and name is None:
        return None

    stats_source = entry
    nested = pick(entry, STATS_CONTAINER_KEYS)
    if isinstance(nested, dict):
        stats_source = nested
    stats = extract_stat_totals(stats_source)
    minutes = to_minutes(pick(stats_source, MINUTES_KEYS))
    if minutes == 0.0:
        minutes = to_minutes(pick(entry, MINUTES_KEYS))
    if stats.is_empty() and minutes <= 0.0:
        return None

    return PlayerGameLine(
        player_id=str(raw_id) if raw_id is not None else name,
        name=name or str(raw_id),
        team_id=team_id,
        stats=stats,
        minutes=minutes,
        jersey=str(jersey) if jersey is not None else None,
        starter=_is_starter(entry),
    )


def collect_player_lines(payload: Any, team_ids: Sequence[str]) -> List[PlayerGameLine]:
    """Player lines for the given teams, one per (team, player)."""
    wanted = set(team_ids)
    best: Dict[Tuple[str, str], PlayerGameLine] = {}
    order: List[Tuple[str, str]] = []
    for node in _walk(payload):
        if not isinstance(node, dict):
            continue
        team_id = _team_id(node)
        if team_id not in wanted:
            continue
        for key in PLAYER_LIST_KEYS:
            entries = node.get(key)
            if not isinstance(entries, list):
                continue
            for entry in entries:
                line = extract_player_line(entry, team_id)
                if line is None:
                    continue
                k = (team_id, line.player_id)
                prev = best.get(k)
                if prev is None:
                    order.append(k)
                    best[k] = line
                elif line.stats.shot_volume > prev.stats.shot_volume:
                    best[k] = line
    return [best[k] for k in order]


def extract_game(game_id: str, payload: Any, game_date: str) -> Optional[GameBoxScore]:
    """
    Build a ``GameBoxScore`` from a raw box-score payload.

    Args:
        game_id: External game identifier
        payload: Decoded box-score JSON of any shape
        game_date: ISO date the game was listed on

    Returns:
        The parsed game, or None when the two teams or their totals
        cannot be located.
    """
    teams = find_teams_meta(payload)
    if not teams or len(teams) < 2:
        return None

    home_meta, away_meta = resolve_home_away(teams[0], teams[1])
    home_id = _team_id(home_meta)
    away_id = _team_id(away_meta)

    best = best_totals_by_team(collect_team_stat_candidates(payload))
    home_stats = best.get(home_id)
    away_stats = best.get(away_id)
    if home_stats is None or away_stats is None:
        return None

    return GameBoxScore(
        game_id=str(game_id),
        date=game_date,
        home=TeamGameLine(home_id, team_name_from_meta(home_meta), home_stats),
        away=TeamGameLine(away_id, team_name_from_meta(away_meta), away_stats),
        players=tuple(collect_player_lines(payload, (home_id, away_id))),
    )
