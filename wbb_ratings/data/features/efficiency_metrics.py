"""Possession-based efficiency metrics derived from season totals.

Every function here is pure. Ratios whose denominator is zero (or whose
possession estimate carries no data) return ``None`` rather than NaN or
infinity; display consumers render that as a dash.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, TypeVar

from ...models.game import StatTotals
from ...models.player import PlayerSeasonAggregate
from ...models.team import RatingsRow, TeamSeasonAggregate

FT_POSSESSION_WEIGHT = 0.475
TS_FT_WEIGHT = 0.44
GAME_MINUTES = 40
TEAM_MINUTES_PER_GAME = 200

T = TypeVar("T")


def raw_possessions(fga: float, orb: float, tov: float, fta: float) -> float:
    return fga - orb + tov + FT_POSSESSION_WEIGHT * fta


def possessions(fga: float, orb: float, tov: float, fta: float) -> float:
    """Estimated possessions, floored at 1 so ratings never divide by zero."""
    return max(1.0, raw_possessions(fga, orb, tov, fta))


def possessions_for(totals: StatTotals) -> float:
    return possessions(totals.fga, totals.orb, totals.tov, totals.fta)


def pct(num: float, den: float) -> Optional[float]:
    if not den or den <= 0:
        return None
    return num / den * 100.0


def offensive_rating(points: float, poss: float) -> float:
    return points / poss * 100.0


def defensive_rating(opp_points: float, poss: float) -> float:
    # Own possession estimate stands in for opponent possessions.
    return opp_points / poss * 100.0


def efficiency_margin(off_rating: float, def_rating: float) -> float:
    return off_rating - def_rating


def tempo(poss: float, games: int) -> float:
    return poss / max(1, games)


def effective_fg_pct(totals: StatTotals) -> Optional[float]:
    return pct(totals.fgm + 0.5 * totals.fg3m, totals.fga)


def turnover_pct(totals: StatTotals) -> Optional[float]:
    if raw_possessions(totals.fga, totals.orb, totals.tov, totals.fta) <= 0:
        return None
    return pct(totals.tov, possessions_for(totals))


def offensive_rebound_pct(totals: StatTotals, opponent: StatTotals) -> Optional[float]:
    return pct(totals.orb, totals.orb + opponent.drb)


def free_throw_rate(totals: StatTotals) -> Optional[float]:
    return pct(totals.fta, totals.fga)


def four_factors(totals: StatTotals, opponent: StatTotals) -> Dict[str, Optional[float]]:
    """Four Factors for the side whose shots are ``totals``; call with the pair swapped for defense."""
    return {
        "efg_pct": effective_fg_pct(totals),
        "tov_pct": turnover_pct(totals),
        "orb_pct": offensive_rebound_pct(totals, opponent),
        "ft_rate": free_throw_rate(totals),
    }


def extended_factors(totals: StatTotals, opponent: StatTotals) -> Dict[str, Optional[float]]:
    """Shooting splits and event rates for the side whose shots are ``totals``."""
    own_poss = possessions_for(totals)
    has_poss = raw_possessions(totals.fga, totals.orb, totals.tov, totals.fta) > 0
    return {
        "two_pct": pct(totals.fgm - totals.fg3m, totals.fga - totals.fg3a),
        "three_pct": pct(totals.fg3m, totals.fg3a),
        "ft_pct": pct(totals.ftm, totals.fta),
        "three_pa_rate": pct(totals.fg3a, totals.fga),
        "assist_rate": pct(totals.ast, totals.fgm),
        # Other side's two-point attempts blocked by this side.
        "block_pct": pct(totals.blk, opponent.fga - opponent.fg3a),
        "steal_pct": pct(opponent.stl, own_poss) if has_poss else None,
    }


def team_report(team: TeamSeasonAggregate) -> Dict[str, Dict[str, Optional[float]]]:
    """Offense (own shots) and defense (opponent shots) factor tables for one team."""
    offense = four_factors(team.totals, team.opp_totals)
    offense.update(extended_factors(team.totals, team.opp_totals))
    defense = four_factors(team.opp_totals, team.totals)
    defense.update(extended_factors(team.opp_totals, team.totals))
    return {"offense": offense, "defense": defense}


def rank_values(values: Sequence[Optional[float]], higher_is_better: bool = True) -> List[Optional[int]]:
    """
    1-based ranks aligned with ``values``.

    Sorting is stable; equal values share the rank of the first of them in
    sorted order (10, 10, 8 -> 1, 1, 3). ``None`` values get no rank.
    """
    indexed = [(i, v) for i, v in enumerate(values) if v is not None]
    ordered = sorted(indexed, key=lambda item: -item[1] if higher_is_better else item[1])
    ranks: List[Optional[int]] = [None] * len(values)
    prev_value = None
    prev_rank = 0
    for position, (idx, value) in enumerate(ordered, start=1):
        rank = prev_rank if position > 1 and value == prev_value else position
        ranks[idx] = rank
        prev_value, prev_rank = value, rank
    return ranks


def rank_by(
    items: Sequence[T],
    metric: Callable[[T], Optional[float]],
    higher_is_better: bool = True,
) -> List[Optional[int]]:
    return rank_values([metric(item) for item in items], higher_is_better)


def ratings_row(team: TeamSeasonAggregate) -> RatingsRow:
    poss = possessions_for(team.totals)
    adj_o = offensive_rating(team.points, poss)
    adj_d = defensive_rating(team.opp_points, poss)
    return RatingsRow(
        team_id=team.team_id,
        team_name=team.team_name,
        games=team.games,
        adj_o=adj_o,
        adj_d=adj_d,
        adj_em=efficiency_margin(adj_o, adj_d),
        adj_t=tempo(poss, team.games),
        wins=team.wins,
        losses=team.losses,
    )


def build_ratings_rows(teams: Mapping[str, TeamSeasonAggregate]) -> List[RatingsRow]:
    """Ratings for every team, sorted by efficiency margin (best first), with ranks."""
    rows = [ratings_row(teams[team_id]) for team_id in sorted(teams)]
    for row, rank in zip(rows, rank_by(rows, lambda r: r.adj_em)):
        row.overall_rank = rank
    for row, rank in zip(rows, rank_by(rows, lambda r: r.adj_o)):
        row.offensive_rank = rank
    for row, rank in zip(rows, rank_by(rows, lambda r: r.adj_d, higher_is_better=False)):
        row.defensive_rank = rank
    for row, rank in zip(rows, rank_by(rows, lambda r: r.adj_t)):
        row.tempo_rank = rank
    return sorted(rows, key=lambda r: r.adj_em, reverse=True)


def team_stats_rows(teams: Mapping[str, TeamSeasonAggregate]) -> List[Dict]:
    out = []
    for team_id in sorted(teams):
        team = teams[team_id]
        row = team.to_dict()
        row["report"] = team_report(team)
        out.append(row)
    return out


def player_metrics(player: PlayerSeasonAggregate, team: Optional[TeamSeasonAggregate]) -> Dict[str, Optional[float]]:
    """
    Per-player rates relative to the player's team season totals.

    Args:
        player: Player season aggregate
        team: The player's team aggregate, or None when unknown

    Returns:
        Mapping of metric name to value (None when undefined)
    """
    p = player.totals
    shot_poss = p.fga + TS_FT_WEIGHT * p.fta + p.tov
    metrics: Dict[str, Optional[float]] = {
        "efg_pct": effective_fg_pct(p),
        "ts_pct": pct(p.points, 2 * (p.fga + TS_FT_WEIGHT * p.fta)),
        "ortg": pct(p.points, shot_poss),
        "ft_rate": free_throw_rate(p),
        "ft_pct": pct(p.ftm, p.fta),
        "two_pct": pct(p.fgm - p.fg3m, p.fga - p.fg3a),
        "three_pct": pct(p.fg3m, p.fg3a),
        "ppg": p.points / player.games if player.games else None,
        "rpg": p.trb / player.games if player.games else None,
        "apg": p.ast / player.games if player.games else None,
        "fouls_per_40": p.pf * GAME_MINUTES / player.minutes if player.minutes > 0 else None,
        "usage_pct": None,
        "shot_pct": None,
        "minutes_pct": None,
        "orb_pct": None,
        "drb_pct": None,
        "assist_rate": None,
        "tov_rate": None,
        "block_pct": None,
        "steal_pct": None,
    }
    if team is None:
        return metrics

    own, opp = team.totals, team.opp_totals
    team_poss = raw_possessions(own.fga, own.orb, own.tov, own.fta)
    opp_poss = raw_possessions(opp.fga, opp.orb, opp.tov, opp.fta)
    team_minutes = team.games * TEAM_MINUTES_PER_GAME
    metrics["usage_pct"] = pct(shot_poss, team_poss)
    metrics["shot_pct"] = pct(p.fga, own.fga)
    # Share of the minutes available to one roster spot.
    metrics["minutes_pct"] = pct(player.minutes * 5, team_minutes)

    if player.minutes > 0 and team_minutes > 0:
        # Player counts scaled up to a full share of floor time.
        floor_scale = team_minutes / 5 / player.minutes
        metrics["orb_pct"] = pct(p.orb * floor_scale, own.orb + opp.drb)
        metrics["drb_pct"] = pct(p.drb * floor_scale, own.drb + opp.orb)
        metrics["block_pct"] = pct(p.blk * floor_scale, opp.fga - opp.fg3a)
        metrics["steal_pct"] = pct(p.stl * floor_scale, opp_poss)
        on_floor_poss = team_poss / team_minutes * player.minutes
        metrics["assist_rate"] = pct(p.ast, on_floor_poss)
        metrics["tov_rate"] = pct(p.tov, on_floor_poss)
    return metrics


def player_stats_rows(
    players: Mapping[str, PlayerSeasonAggregate],
    teams: Mapping[str, TeamSeasonAggregate],
) -> List[Dict]:
    out = []
    for key in sorted(players):
        player = players[key]
        row = player.to_dict()
        row["metrics"] = player_metrics(player, teams.get(player.team_id))
        out.append(row)
    return out


def ratings_payload_rows(rows: Iterable[RatingsRow]) -> List[Dict]:
    return [row.to_dict() for row in rows]
