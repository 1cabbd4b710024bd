"""Command-line interface for the women's college basketball ratings pipeline."""

import argparse
import logging
import sys
from datetime import date

from .data.coverage_audit import write_missing_games_report
from .data.features.aggregation import compare_team_aggregates, replay_game_log
from .data.features.efficiency_metrics import build_ratings_rows
from .data.ingestion.season_pipeline import (
    InsufficientCoverageError,
    PayloadValidationError,
    SeasonIngestionConfig,
    SeasonIngestionPipeline,
)
from .data.ingestion.state_store import IncrementalStateStore
from .data.scrapers.ncaa_api import FetchError


def _parse_date(value):
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}")


def build_config(args, mode):
    return SeasonIngestionConfig(
        season_start=args.season_start,
        end_date=args.end_date,
        mode=mode,
        incremental_days=getattr(args, "days", 2),
        output_dir=args.output_dir,
        box_concurrency=args.concurrency,
        box_delay_seconds=args.box_delay,
        min_teams_required=args.min_teams,
        dry_run=args.dry_run,
    )


def print_summary(summary):
    print(f"\n{'='*60}")
    print(f"{summary.mode.upper()} RUN {summary.start} -> {summary.end}")
    print(f"{'='*60}")
    print(f"Days walked:        {summary.days_walked} ({len(summary.failed_days)} scoreboard failures)")
    print(f"Games discovered:   {summary.games_found}")
    print(f"Games folded:       {summary.games_parsed} ({summary.success_rate:.1%})")
    print(f"Games not folded:   {summary.games_failed}")
    print(f"Already processed:  {summary.already_processed}")
    print(f"Teams / players:    {summary.teams} / {summary.players}")
    print(f"Processed total:    {summary.processed_total}")
    for name, path in sorted(summary.artifacts.items()):
        print(f"  - {name}: {path}")


def run_ingestion(args, mode):
    """Run a full rebuild or an incremental update."""
    config = build_config(args, mode)
    try:
        summary = SeasonIngestionPipeline(config).run()
    except (InsufficientCoverageError, PayloadValidationError, FetchError, ValueError) as exc:
        print(f"Error: {exc}")
        return 1

    print_summary(summary)
    if summary.persisted:
        print("✓ Season state saved.")
    else:
        print("Dry run: nothing was written.")
    return 0


def build_season(args):
    return run_ingestion(args, "full")


def update_season(args):
    return run_ingestion(args, "incremental")


def audit_season(args):
    """List discovered games whose box score could not be fetched or parsed."""
    config = build_config(args, "audit")
    try:
        summary = SeasonIngestionPipeline(config).run()
    except (FetchError, ValueError) as exc:
        print(f"Error: {exc}")
        return 1

    print_summary(summary)
    paths = write_missing_games_report(summary.missing, args.report_dir or args.output_dir)
    print(f"\nMissing games: {len(summary.missing)}")
    for name, path in sorted(paths.items()):
        print(f"  - {name}: {path}")
    return 0


def verify_state(args):
    """Rebuild aggregates from the stored game log and compare them with stored totals."""
    state = IncrementalStateStore(args.output_dir).load_state()
    if not state.teams:
        print(f"Error: no stored season state under {args.output_dir}")
        return 1

    replayed = replay_game_log(state.game_log.values())
    mismatched = compare_team_aggregates(state.teams, replayed.teams)
    print(f"Replayed {replayed.games_folded} games for {len(replayed.teams)} teams")
    if len(state.game_log) != len(state.processed_ids):
        print(f"Warning: game log has {len(state.game_log)} entries for {len(state.processed_ids)} processed ids")
    if mismatched:
        print(f"✗ {len(mismatched)} teams differ from the replayed totals:")
        for team_id in mismatched[: args.limit]:
            print(f"   - {team_id}")
        return 1
    print("✓ Stored aggregates match the game log.")
    return 0


def show_ratings(args):
    """Print the top of the ratings table from stored state."""
    state = IncrementalStateStore(args.output_dir).load_state()
    if not state.teams:
        print(f"Error: no stored season state under {args.output_dir}")
        return 1

    rows = build_ratings_rows(state.teams)
    print(f"{'Rk':>4}  {'Team':<32} {'W-L':>7} {'AdjO':>7} {'AdjD':>7} {'AdjEM':>7} {'AdjT':>6}")
    for row in rows[: args.top]:
        record = f"{row.wins}-{row.losses}"
        print(
            f"{row.overall_rank or '-':>4}  {row.team_name[:32]:<32} {record:>7} "
            f"{row.adj_o:7.1f} {row.adj_d:7.1f} {row.adj_em:+7.1f} {row.adj_t:6.1f}"
        )
    return 0


def _add_run_arguments(parser):
    parser.add_argument(
        "--season-start",
        type=_parse_date,
        default=date(2025, 11, 1),
        help="First scoreboard date to walk (default: 2025-11-01)",
    )
    parser.add_argument(
        "--end-date",
        type=_parse_date,
        default=None,
        help="Last scoreboard date to walk (default: today, UTC)",
    )
    parser.add_argument("--concurrency", type=int, default=4, help="Parallel box-score fetches (default: 4)")
    parser.add_argument(
        "--box-delay",
        type=float,
        default=0.4,
        help="Seconds each worker waits after a box-score request (default: 0.4)",
    )
    parser.add_argument(
        "--min-teams",
        type=int,
        default=300,
        help="Refuse to save when fewer teams were aggregated (default: 300)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Walk and aggregate without writing files")


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Women's college basketball efficiency ratings from NCAA box scores"
    )
    parser.add_argument("--output-dir", default="public/data", help="Season state directory (default: public/data)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log progress at INFO level")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    build_parser = subparsers.add_parser("build", help="Rebuild the season from scratch")
    _add_run_arguments(build_parser)

    update_parser = subparsers.add_parser("update", help="Fold games from the last few days into stored state")
    _add_run_arguments(update_parser)
    update_parser.add_argument("--days", type=int, default=2, help="Days back from the end date (default: 2)")

    audit_parser = subparsers.add_parser("audit", help="Report games whose box scores could not be folded")
    _add_run_arguments(audit_parser)
    audit_parser.add_argument(
        "--report-dir",
        default=None,
        help="Where to write missing_games.json/.csv (default: the output directory)",
    )

    verify_parser = subparsers.add_parser("verify", help="Replay the game log and compare with stored aggregates")
    verify_parser.add_argument("--limit", type=int, default=25, help="Mismatched teams to list (default: 25)")

    ratings_parser = subparsers.add_parser("ratings", help="Print the ratings table from stored state")
    ratings_parser.add_argument("--top", type=int, default=25, help="Rows to print (default: 25)")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "build":
        return build_season(args)
    elif args.command == "update":
        return update_season(args)
    elif args.command == "audit":
        return audit_season(args)
    elif args.command == "verify":
        return verify_state(args)
    elif args.command == "ratings":
        return show_ratings(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
