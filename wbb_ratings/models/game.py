"""Box-score models for a single completed game."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Dict, Optional, Tuple

STAT_FIELDS: Tuple[str, ...] = (
    "points",
    "fgm",
    "fga",
    "fg3m",
    "fg3a",
    "ftm",
    "fta",
    "orb",
    "drb",
    "trb",
    "ast",
    "stl",
    "blk",
    "tov",
    "pf",
)


@dataclass(frozen=True)
class StatTotals:
    """Counting stats for one team (or player) over one or more games."""

    points: int = 0
    fgm: int = 0
    fga: int = 0
    fg3m: int = 0
    fg3a: int = 0
    ftm: int = 0
    fta: int = 0
    orb: int = 0
    drb: int = 0
    trb: int = 0
    ast: int = 0
    stl: int = 0
    blk: int = 0
    tov: int = 0
    pf: int = 0

    def __add__(self, other: "StatTotals") -> "StatTotals":
        if not isinstance(other, StatTotals):
            return NotImplemented
        return StatTotals(**{name: getattr(self, name) + getattr(other, name) for name in STAT_FIELDS})

    def is_empty(self) -> bool:
        return all(getattr(self, name) == 0 for name in STAT_FIELDS)

    @property
    def shot_volume(self) -> int:
        """FGA + FTA, used to pick the most complete of several candidate totals."""
        return self.fga + self.fta

    def to_dict(self, prefix: str = "") -> Dict[str, int]:
        return {f"{prefix}{name}": getattr(self, name) for name in STAT_FIELDS}

    @classmethod
    def from_dict(cls, data: Dict, prefix: str = "") -> "StatTotals":
        values = {}
        for f in fields(cls):
            raw = data.get(f"{prefix}{f.name}", 0)
            try:
                values[f.name] = int(raw or 0)
            except (TypeError, ValueError):
                values[f.name] = 0
        return cls(**values)


@dataclass(frozen=True)
class TeamGameLine:
    team_id: str
    team_name: str
    stats: StatTotals

    def to_dict(self) -> dict:
        return {"team_id": self.team_id, "team_name": self.team_name, "stats": self.stats.to_dict()}

    @classmethod
    def from_dict(cls, data: dict) -> "TeamGameLine":
        return cls(
            team_id=str(data["team_id"]),
            team_name=str(data.get("team_name") or data["team_id"]),
            stats=StatTotals.from_dict(data.get("stats") or {}),
        )


@dataclass(frozen=True)
class PlayerGameLine:
    """One player's line in one game."""

    player_id: str
    name: str
    team_id: str
    stats: StatTotals
    minutes: float = 0.0
    jersey: Optional[str] = None
    starter: bool = False

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "name": self.name,
            "team_id": self.team_id,
            "jersey": self.jersey,
            "starter": self.starter,
            "minutes": self.minutes,
            "stats": self.stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PlayerGameLine":
        return cls(
            player_id=str(data["player_id"]),
            name=str(data.get("name") or data["player_id"]),
            team_id=str(data["team_id"]),
            stats=StatTotals.from_dict(data.get("stats") or {}),
            minutes=float(data.get("minutes") or 0.0),
            jersey=data.get("jersey"),
            starter=bool(data.get("starter", False)),
        )


@dataclass(frozen=True)
class GameBoxScore:
    """
    Team-level totals for one completed game.

    Built once by the box-score extractor and never mutated; the aggregation
    engine consumes it and the game log keeps its dict form.
    """

    game_id: str
    date: str
    home: TeamGameLine
    away: TeamGameLine
    players: Tuple[PlayerGameLine, ...] = ()

    def opponent_of(self, team_id: str) -> TeamGameLine:
        if team_id == self.home.team_id:
            return self.away
        if team_id == self.away.team_id:
            return self.home
        raise KeyError(team_id)

    def to_dict(self) -> dict:
        return {
            "game_id": self.game_id,
            "date": self.date,
            "home": self.home.to_dict(),
            "away": self.away.to_dict(),
            "players": [p.to_dict() for p in self.players],
            # Flat keys for display consumers.
            "homeTeam": self.home.team_name,
            "homeId": self.home.team_id,
            "homeScore": self.home.stats.points,
            "awayTeam": self.away.team_name,
            "awayId": self.away.team_id,
            "awayScore": self.away.stats.points,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GameBoxScore":
        return cls(
            game_id=str(data["game_id"]),
            date=str(data.get("date") or ""),
            home=TeamGameLine.from_dict(data["home"]),
            away=TeamGameLine.from_dict(data["away"]),
            players=tuple(PlayerGameLine.from_dict(p) for p in data.get("players") or []),
        )
