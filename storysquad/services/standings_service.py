"""
Standings Updater

Folds tallied faceoff results into the ledger and the cumulative totals:
1. Marks each faceoff resolved with its winner and vote counts
2. Appends one credit row per faceoff to the points ledger
3. Adds the credit to the winner's team and squad totals

Runs in the same transaction as the tally, so either everything for the
week lands or nothing does.
"""
import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storysquad.config.settings import Settings
from storysquad.exceptions import DataIntegrityError
from storysquad.orm.cohort import Submission
from storysquad.orm.faceoff import Faceoff, Point
from storysquad.orm.squad import Member, Squad, Team
from storysquad.schemas.tournament import FaceoffResult

logger = logging.getLogger(__name__)


async def _winner_affiliations(
    db: AsyncSession,
    submission_ids: Sequence[int]
) -> Dict[int, Dict[str, int]]:
    """
    Map winning submission -> {"team_id", "squad_id"}.

    Raises:
        DataIntegrityError: winner has no membership, team or squad
    """
    result = await db.execute(
        select(
            Submission.id.label("submission_id"),
            Member.id.label("member_id"),
            Team.id.label("team_id"),
            Squad.id.label("squad_id"),
        )
        .join(Member, Member.child_id == Submission.child_id, isouter=True)
        .join(Team, Team.id == Member.team_id, isouter=True)
        .join(Squad, Squad.id == Team.squad_id, isouter=True)
        .where(Submission.id.in_(submission_ids))
    )

    affiliations = {}
    for row in result.mappings().all():
        if row["member_id"] is None or row["team_id"] is None or row["squad_id"] is None:
            raise DataIntegrityError(
                f"Winning submission {row['submission_id']} has no team/squad to credit"
            )
        affiliations[row["submission_id"]] = {
            "team_id": row["team_id"],
            "squad_id": row["squad_id"],
        }

    missing = set(submission_ids) - set(affiliations)
    if missing:
        raise DataIntegrityError(f"Winning submissions not found: {sorted(missing)}")

    return affiliations


async def update_faceoffs_and_standings(
    db: AsyncSession,
    results: Sequence[FaceoffResult],
    credit: Optional[int] = None
) -> Dict[int, int]:
    """
    Apply tallied results.

    Args:
        db: Transaction-scoped session (same one the tally used)
        results: Output of count_votes
        credit: Points per win (defaults to Settings.FACEOFF_WIN_CREDIT)

    Returns:
        squad_id -> points credited in this run

    Raises:
        DataIntegrityError: a result names a missing faceoff or uncreditable winner
    """
    if not results:
        return {}

    if credit is None:
        credit = Settings.FACEOFF_WIN_CREDIT

    result = await db.execute(
        select(Faceoff).where(Faceoff.id.in_([r.faceoff_id for r in results]))
    )
    faceoffs = {f.id: f for f in result.scalars().all()}

    affiliations = await _winner_affiliations(
        db, sorted({r.winner_submission_id for r in results})
    )

    team_totals: Dict[int, int] = defaultdict(int)
    squad_totals: Dict[int, int] = defaultdict(int)
    now = datetime.utcnow()

    for outcome in results:
        faceoff = faceoffs.get(outcome.faceoff_id)
        if faceoff is None:
            raise DataIntegrityError(f"Faceoff {outcome.faceoff_id} not found")

        if faceoff.resolved:
            logger.warning(f"Faceoff {faceoff.id} already resolved - not crediting again")
            continue

        faceoff.resolved = True
        faceoff.winner_submission_id = outcome.winner_submission_id
        faceoff.votes_a = outcome.votes_a
        faceoff.votes_b = outcome.votes_b
        faceoff.decided_by = outcome.decided_by
        faceoff.resolved_at = now

        winner = affiliations[outcome.winner_submission_id]

        db.add(Point(
            submission_id=outcome.winner_submission_id,
            team_id=winner["team_id"],
            faceoff_id=faceoff.id,
            week=faceoff.week,
            value=credit,
            created_at=now
        ))

        team_totals[winner["team_id"]] += credit
        squad_totals[winner["squad_id"]] += credit

    await db.flush()

    # Sorted so concurrent writers always take row locks in the same order
    for team_id in sorted(team_totals):
        await db.execute(
            update(Team)
            .where(Team.id == team_id)
            .values(points=Team.points + team_totals[team_id])
        )

    for squad_id in sorted(squad_totals):
        await db.execute(
            update(Squad)
            .where(Squad.id == squad_id)
            .values(points=Squad.points + squad_totals[squad_id])
        )

    logger.info(
        f"Credited {sum(squad_totals.values())} points to "
        f"{len(team_totals)} teams in {len(squad_totals)} squads"
    )

    return dict(squad_totals)
