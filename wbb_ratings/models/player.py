"""Player season aggregate."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .game import PlayerGameLine, StatTotals


@dataclass
class PlayerSeasonAggregate:
    player_id: str
    name: str
    team_id: str
    team_name: str = ""
    jersey: Optional[str] = None
    games: int = 0
    starts: int = 0
    minutes: float = 0.0
    totals: StatTotals = field(default_factory=StatTotals)

    @staticmethod
    def key_for(team_id: str, player_id: str) -> str:
        return f"{team_id}:{player_id}"

    @property
    def key(self) -> str:
        return self.key_for(self.team_id, self.player_id)

    def record(self, line: PlayerGameLine) -> None:
        self.games += 1
        if line.starter:
            self.starts += 1
        self.minutes += line.minutes
        self.totals = self.totals + line.stats
        if line.jersey and not self.jersey:
            self.jersey = line.jersey

    def to_dict(self) -> dict:
        out = {
            "player_id": self.player_id,
            "name": self.name,
            "team_id": self.team_id,
            "team_name": self.team_name,
            "jersey": self.jersey,
            "games": self.games,
            "starts": self.starts,
            "minutes": round(self.minutes, 2),
        }
        out.update(self.totals.to_dict())
        return out

    @classmethod
    def from_dict(cls, data: dict) -> "PlayerSeasonAggregate":
        return cls(
            player_id=str(data["player_id"]),
            name=str(data.get("name") or data["player_id"]),
            team_id=str(data["team_id"]),
            team_name=str(data.get("team_name") or ""),
            jersey=data.get("jersey"),
            games=int(data.get("games", 0)),
            starts=int(data.get("starts", 0)),
            minutes=float(data.get("minutes", 0.0)),
            totals=StatTotals.from_dict(data),
        )
