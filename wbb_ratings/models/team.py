"""Team season aggregate and derived ratings row."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .game import StatTotals


@dataclass
class TeamSeasonAggregate:
    """
    Running season totals for one team.

    Counting fields only ever grow: ``record`` adds one game's own and
    opponent totals and never subtracts. ``games == wins + losses`` holds
    after every call.
    """

    team_id: str
    team_name: str
    games: int = 0
    wins: int = 0
    losses: int = 0
    totals: StatTotals = field(default_factory=StatTotals)
    opp_totals: StatTotals = field(default_factory=StatTotals)

    def record(self, own: StatTotals, opponent: StatTotals) -> None:
        """
        Add one game to the running totals.

        Args:
            own: This team's totals for the game
            opponent: The opponent's totals for the game
        """
        self.games += 1
        if own.points > opponent.points:
            self.wins += 1
        else:
            self.losses += 1
        self.totals = self.totals + own
        self.opp_totals = self.opp_totals + opponent

    @property
    def points(self) -> int:
        return self.totals.points

    @property
    def opp_points(self) -> int:
        return self.opp_totals.points

    def to_dict(self) -> dict:
        out = {
            "team_id": self.team_id,
            "team_name": self.team_name,
            "games": self.games,
            "wins": self.wins,
            "losses": self.losses,
        }
        out.update(self.totals.to_dict())
        out.update(self.opp_totals.to_dict(prefix="opp_"))
        return out

    @classmethod
    def from_dict(cls, data: dict) -> "TeamSeasonAggregate":
        return cls(
            team_id=str(data["team_id"]),
            team_name=str(data.get("team_name") or data["team_id"]),
            games=int(data.get("games", 0)),
            wins=int(data.get("wins", 0)),
            losses=int(data.get("losses", 0)),
            totals=StatTotals.from_dict(data),
            opp_totals=StatTotals.from_dict(data, prefix="opp_"),
        )


@dataclass
class RatingsRow:
    """Read-only efficiency row, recomputed from the aggregates on every run."""

    team_id: str
    team_name: str
    games: int
    adj_o: float
    adj_d: float
    adj_em: float
    adj_t: float
    wins: int = 0
    losses: int = 0
    overall_rank: Optional[int] = None
    offensive_rank: Optional[int] = None
    defensive_rank: Optional[int] = None
    tempo_rank: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "team_id": self.team_id,
            "team_name": self.team_name,
            "games": self.games,
            "wins": self.wins,
            "losses": self.losses,
            "adj_o": self.adj_o,
            "adj_d": self.adj_d,
            "adj_em": self.adj_em,
            "adj_t": self.adj_t,
            "overall_rank": self.overall_rank,
            "offensive_rank": self.offensive_rank,
            "defensive_rank": self.defensive_rank,
            "tempo_rank": self.tempo_rank,
        }
