#!/usr/bin/env python3
"""
Story Squad Tournament CLI

Usage:
    python -m storysquad <command> [options]

Commands:
    cycle       Weekly cycles (generate, resolve, reset)
    cohort      Cohort operations (list, submissions, cluster, moderate)
    db          Database operations (init)

Environment:
    DATABASE_URL        Database connection string
    MATCHUPS_PER_SQUAD  Faceoffs per squad per week (default 4)
    FACEOFF_WIN_CREDIT  Points credited per faceoff win (default 10)
    LOG_LEVEL           DEBUG|INFO|WARNING|ERROR
"""
import sys
import argparse
import logging
from typing import Optional

from storysquad import __version__
from storysquad.config.settings import Settings
from storysquad.cli.cycle_commands import CycleCommand
from storysquad.cli.cohort_commands import CohortCommand
from storysquad.cli.db_commands import DbCommand


def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="storysquad",
        description="Story Squad Weekly Tournament CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s db init
  %(prog)s cohort cluster --id 3
  %(prog)s cycle generate --week 2026-W42
  %(prog)s cycle resolve
  %(prog)s cycle reset --force
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    parser.add_argument(
        "--log-level",
        default=Settings.LOG_LEVEL.upper(),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without executing"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Cycle commands
    cycle_parser = subparsers.add_parser("cycle", help="Weekly tournament cycles")
    cycle_subparsers = cycle_parser.add_subparsers(dest="cycle_action")

    # cycle generate
    generate_parser = cycle_subparsers.add_parser("generate", help="Generate this week's faceoffs")
    generate_parser.add_argument("--week", "-w", help="Cycle marker, e.g. 2026-W42 (default: current ISO week)")
    generate_parser.add_argument("--cohort", "-c", type=int, help="Restrict to one cohort")

    # cycle resolve
    resolve_parser = cycle_subparsers.add_parser("resolve", help="Tally votes and update standings")
    resolve_parser.add_argument("--week", "-w", help="Only resolve this week's faceoffs")

    # cycle reset
    reset_parser = cycle_subparsers.add_parser("reset", help="Reset game state (testing only)")
    reset_parser.add_argument("--force", action="store_true", help="Skip confirmation")

    # Cohort commands
    cohort_parser = subparsers.add_parser("cohort", help="Cohort operations")
    cohort_subparsers = cohort_parser.add_subparsers(dest="cohort_action")

    # cohort list
    cohort_subparsers.add_parser("list", help="List cohorts")

    # cohort submissions
    submissions_parser = cohort_subparsers.add_parser("submissions", help="List a cohort's submissions")
    submissions_parser.add_argument("--id", "-i", type=int, required=True, help="Cohort ID")

    # cohort cluster
    cluster_parser = cohort_subparsers.add_parser("cluster", help="Form squads and teams for a cohort")
    cluster_parser.add_argument("--id", "-i", type=int, required=True, help="Cohort ID")

    # cohort moderate
    moderate_parser = cohort_subparsers.add_parser("moderate", help="Approve or reject a submission")
    moderate_parser.add_argument("--submission", "-s", type=int, required=True, help="Submission ID")
    moderate_parser.add_argument("--status", required=True, choices=["APPROVED", "REJECTED"])

    # Database commands
    db_parser = subparsers.add_parser("db", help="Database operations")
    db_subparsers = db_parser.add_subparsers(dest="db_action")

    # db init
    db_subparsers.add_parser("init", help="Create missing tables")

    # db config
    db_subparsers.add_parser("config", help="Show effective settings")

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 1

    # Setup logging
    setup_logging(parsed.log_level)

    # Route to appropriate command handler
    command_map = {
        "cycle": CycleCommand,
        "cohort": CohortCommand,
        "db": DbCommand,
    }

    if parsed.command in command_map:
        handler = command_map[parsed.command](dry_run=parsed.dry_run)
        return handler.execute(parsed)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
