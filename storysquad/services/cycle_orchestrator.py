"""
Cycle Orchestrator: Weekly Tournament Transactions

Two all-or-nothing cycles, each run by an external scheduler:

Generation (after children have assigned points, before voting):
  1. Collect approved submissions with summed points, grouped by squad
  2. Pair each squad into the week's faceoffs
  3. Insert the faceoffs

Resolution (after voting closes):
  1. Tally the ballots of every open faceoff
  2. Mark faceoffs resolved, append ledger credits, update team/squad totals

Rules:
- One transaction per cycle; any failure rolls the whole cycle back
- One writer per cycle type: asyncio.Lock in-process, plus
  pg_advisory_xact_lock across processes on PostgreSQL
- Generation skips squads that already have faceoffs for the week and
  returns their existing IDs alongside the new ones
- Resolution only touches unresolved faceoffs, so re-running is a no-op
"""
import asyncio
import logging
import weakref
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from storysquad.config.settings import Settings
from storysquad.database import SessionFactory, dialect_name, run_in_transaction
from storysquad.exceptions import StorySquadException
from storysquad.schemas.tournament import CycleReport
from storysquad.services.faceoff_writer import get_faceoff_ids_by_squad, write_faceoffs
from storysquad.services.matchup_generator import generate_matchups
from storysquad.services.standings_service import update_faceoffs_and_standings
from storysquad.services.submission_aggregator import collect_and_sum
from storysquad.services.vote_tally import count_votes

logger = logging.getLogger(__name__)

GENERATION = "generation"
RESOLUTION = "resolution"

ADVISORY_LOCK_KEYS = {
    GENERATION: 731_001,
    RESOLUTION: 731_002,
}

# Child tables first so SQLite deletes never trip a foreign key
RESET_TABLES = ("votes", "points", "faceoffs", "members", "teams", "squads")

_cycle_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, Dict[str, asyncio.Lock]]" = (
    weakref.WeakKeyDictionary()
)


def current_week(now: Optional[datetime] = None) -> str:
    """ISO week marker, e.g. "2026-W42" (UTC)."""
    year, week, _ = (now or datetime.utcnow()).isocalendar()
    return f"{year}-W{week:02d}"


def _cycle_lock(cycle: str) -> asyncio.Lock:
    """Per-event-loop lock for one cycle type."""
    locks = _cycle_locks.setdefault(asyncio.get_running_loop(), {})
    if cycle not in locks:
        locks[cycle] = asyncio.Lock()
    return locks[cycle]


async def _acquire_cycle_guard(db: AsyncSession, cycle: str) -> None:
    """Cross-process guard; released automatically at commit/rollback."""
    if dialect_name(db) == "postgresql":
        await db.execute(
            text("SELECT pg_advisory_xact_lock(:key)"),
            {"key": ADVISORY_LOCK_KEYS[cycle]}
        )


# =============================================================================
# Generation
# =============================================================================

async def run_generation_cycle(
    week: Optional[str] = None,
    cohort_id: Optional[int] = None,
    session_factory: Optional[SessionFactory] = None
) -> CycleReport:
    """
    Run the generation transaction and report what it did.

    Args:
        week: Cycle marker (defaults to current_week())
        cohort_id: Restrict to one cohort
        session_factory: Session factory (defaults to AsyncSessionLocal)
    """
    week = week or current_week()

    async def _generate(db: AsyncSession) -> CycleReport:
        await _acquire_cycle_guard(db, GENERATION)

        squads = await collect_and_sum(db, cohort_id)

        # Squads already bracketed this week keep their faceoffs
        existing = await get_faceoff_ids_by_squad(db, week, list(squads))
        if existing:
            logger.info(
                f"Week {week}: {len(existing)} squads already have faceoffs - keeping them"
            )

        pending = {squad_id: entries for squad_id, entries in squads.items() if squad_id not in existing}
        matchups = generate_matchups(pending, week, Settings.MATCHUPS_PER_SQUAD)
        new_ids = await write_faceoffs(db, matchups)

        existing_ids = [faceoff_id for ids in existing.values() for faceoff_id in ids]

        return CycleReport(
            cycle=GENERATION,
            week=week,
            faceoff_ids=sorted(existing_ids + new_ids),
            skipped_squads=[squad_id for squad_id, entries in pending.items() if not entries],
            reused_existing=bool(existing_ids) and not new_ids,
        )

    logger.info(f"Starting faceoff generation for week {week}")

    async with _cycle_lock(GENERATION):
        try:
            report = await run_in_transaction(_generate, session_factory)
        except StorySquadException as e:
            logger.error(f"Faceoff generation failed: {e.message}")
            raise

    logger.info(f"✓ Faceoff generation complete: {len(report.faceoff_ids)} faceoffs")
    return report


async def generate_faceoffs(
    week: Optional[str] = None,
    cohort_id: Optional[int] = None,
    session_factory: Optional[SessionFactory] = None
) -> List[int]:
    """
    Generate this week's faceoffs.

    Returns:
        IDs of the week's faceoffs

    Raises:
        DataIntegrityError: membership points at a missing team/squad
        TransactionError: any database failure (nothing is written)
    """
    report = await run_generation_cycle(week, cohort_id, session_factory)
    return report.faceoff_ids


# =============================================================================
# Resolution
# =============================================================================

async def run_resolution_cycle(
    week: Optional[str] = None,
    session_factory: Optional[SessionFactory] = None
) -> CycleReport:
    """
    Run the resolution transaction and report what it did.

    Args:
        week: Only resolve this week's faceoffs (all open faceoffs when None)
        session_factory: Session factory (defaults to AsyncSessionLocal)
    """
    credit = Settings.FACEOFF_WIN_CREDIT

    async def _resolve(db: AsyncSession) -> CycleReport:
        await _acquire_cycle_guard(db, RESOLUTION)

        results = await count_votes(db, week)
        squad_credits = await update_faceoffs_and_standings(db, results, credit)

        return CycleReport(
            cycle=RESOLUTION,
            week=week,
            faceoff_ids=[r.faceoff_id for r in results],
            resolved_count=len(results),
            squad_credits=squad_credits,
        )

    logger.info("Starting weekly results calculation" + (f" for week {week}" if week else ""))

    async with _cycle_lock(RESOLUTION):
        try:
            report = await run_in_transaction(_resolve, session_factory)
        except StorySquadException as e:
            logger.error(f"Results calculation failed: {e.message}")
            raise

    logger.info(f"✓ Results calculation complete: {report.resolved_count} faceoffs resolved")
    return report


async def calculate_results_for_the_week(
    week: Optional[str] = None,
    session_factory: Optional[SessionFactory] = None
) -> None:
    """
    Tally votes and credit standings for every open faceoff.

    Raises:
        DataIntegrityError: a winner can't be traced to a team/squad
        TransactionError: any database failure (nothing is written)
    """
    await run_resolution_cycle(week, session_factory)


# =============================================================================
# Test reset
# =============================================================================

async def reset_game_for_testing(session_factory: Optional[SessionFactory] = None) -> None:
    """
    Empty votes, points, faceoffs, members, teams and squads.

    Cohorts, children and submissions are kept so the cycle can be rerun
    without reseeding. Testing only.
    """

    async def _reset(db: AsyncSession) -> None:
        if dialect_name(db) == "postgresql":
            await db.execute(text(f"TRUNCATE {', '.join(RESET_TABLES)} RESTART IDENTITY CASCADE"))
        else:
            for table in RESET_TABLES:
                await db.execute(text(f"DELETE FROM {table}"))

    logger.warning(f"Resetting game state: {', '.join(RESET_TABLES)}")

    async with _cycle_lock(GENERATION), _cycle_lock(RESOLUTION):
        await run_in_transaction(_reset, session_factory)
