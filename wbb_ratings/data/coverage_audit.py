"""Missing-game audit: games listed on a scoreboard whose box score never folded."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable

import pandas as pd

NCAA_GAME_URL = "https://www.ncaa.com/game/{game_id}"
AUDIT_COLUMNS = ["gameId", "date", "reason", "ncaaUrl", "status"]


def missing_games_frame(missing: Iterable) -> pd.DataFrame:
    """
    One row per missing game.

    Args:
        missing: ``MissingGame`` records (anything with game_id/date/reason)

    Returns:
        DataFrame with ``AUDIT_COLUMNS``, ordered by date then game id
    """
    rows = [
        {
            "gameId": str(m.game_id),
            "date": m.date,
            "reason": m.reason,
            "ncaaUrl": NCAA_GAME_URL.format(game_id=m.game_id),
            "status": "NEEDS_MANUAL_ENTRY",
        }
        for m in missing
    ]
    frame = pd.DataFrame(rows, columns=AUDIT_COLUMNS)
    if not frame.empty:
        frame = frame.sort_values(["date", "gameId"], kind="stable").reset_index(drop=True)
    return frame


def write_missing_games_report(missing: Iterable, output_dir: str) -> Dict[str, str]:
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    frame = missing_games_frame(missing)

    json_path = out_dir / "missing_games.json"
    with open(json_path, "w") as f:
        json.dump(frame.to_dict(orient="records"), f, indent=2)

    csv_path = out_dir / "missing_games.csv"
    frame.to_csv(csv_path, index=False)
    return {"missing_games_json": str(json_path), "missing_games_csv": str(csv_path)}
