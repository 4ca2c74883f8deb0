"""
Submission Aggregator

Reads approved submissions with their allotment points and restructures them
by squad for the matchup generator.

Ordering inside a squad: points DESC, submission_id ASC.
Pure read: nothing is written.
"""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from storysquad.exceptions import DataIntegrityError
from storysquad.orm.cohort import Submission, SubmissionStatus
from storysquad.orm.squad import Squad, Team, Member
from storysquad.orm.faceoff import Point
from storysquad.schemas.tournament import SubmissionStanding

logger = logging.getLogger(__name__)


def standing_sort_key(standing: SubmissionStanding):
    """points DESC, then submission_id ASC."""
    return (-standing.points, standing.submission_id)


def format_point_sums(rows: Iterable[Mapping[str, Any]]) -> Dict[int, SubmissionStanding]:
    """
    Collapse one-row-per-ledger-entry results into one standing per submission.

    Each row carries: submission_id, child_id, member_id, team_id,
    team_row_id, squad_id, squad_row_id, points (None when the submission
    has no allotments yet). ``*_row_id`` is the id of the joined row and is
    None when the referenced team/squad doesn't exist.

    Raises:
        DataIntegrityError: member -> team or team -> squad reference is dangling
    """
    sums: Dict[int, int] = {}
    info: Dict[int, Mapping[str, Any]] = {}
    unclustered = set()

    for row in rows:
        submission_id = row["submission_id"]

        if row["member_id"] is None:
            unclustered.add(submission_id)
            continue

        if row["team_row_id"] is None:
            raise DataIntegrityError(
                f"Submission {submission_id}: member {row['member_id']} "
                f"references missing team {row['team_id']}"
            )
        if row["squad_row_id"] is None:
            raise DataIntegrityError(
                f"Submission {submission_id}: team {row['team_id']} "
                f"references missing squad {row['squad_id']}"
            )

        info.setdefault(submission_id, row)
        sums[submission_id] = sums.get(submission_id, 0) + (row["points"] or 0)

    for submission_id in sorted(unclustered):
        logger.warning(f"Submission {submission_id} has no squad membership yet - left out of this cycle")

    return {
        submission_id: SubmissionStanding(
            submission_id=submission_id,
            child_id=row["child_id"],
            member_id=row["member_id"],
            team_id=row["team_id"],
            squad_id=row["squad_id"],
            points=sums[submission_id],
        )
        for submission_id, row in info.items()
    }


def sort_by_squad(
    standings: Iterable[SubmissionStanding],
    squad_ids: Iterable[int] = ()
) -> Dict[int, List[SubmissionStanding]]:
    """
    Group standings by squad, each group sorted by standing_sort_key.

    Every id in ``squad_ids`` gets a key even when it has no submissions,
    so empty squads stay visible to the matchup generator.
    """
    squads: Dict[int, List[SubmissionStanding]] = {squad_id: [] for squad_id in squad_ids}

    for standing in standings:
        squads.setdefault(standing.squad_id, []).append(standing)

    for group in squads.values():
        group.sort(key=standing_sort_key)

    return dict(sorted(squads.items()))


async def collect_and_sum(
    db: AsyncSession,
    cohort_id: Optional[int] = None
) -> Dict[int, List[SubmissionStanding]]:
    """
    Fetch approved submissions with their allotment points, grouped by squad.

    Args:
        db: Transaction-scoped session
        cohort_id: Restrict to one cohort (all cohorts when None)

    Returns:
        squad_id -> standings sorted points DESC, submission_id ASC

    Raises:
        DataIntegrityError: a submission's membership points at a missing team/squad
    """
    query = (
        select(
            Submission.id.label("submission_id"),
            Submission.child_id.label("child_id"),
            Member.id.label("member_id"),
            Member.team_id.label("team_id"),
            Team.id.label("team_row_id"),
            Team.squad_id.label("squad_id"),
            Squad.id.label("squad_row_id"),
            Point.value.label("points"),
        )
        .join(Member, Member.child_id == Submission.child_id, isouter=True)
        .join(Team, Team.id == Member.team_id, isouter=True)
        .join(Squad, Squad.id == Team.squad_id, isouter=True)
        .join(
            Point,
            and_(Point.submission_id == Submission.id, Point.faceoff_id.is_(None)),
            isouter=True
        )
        .where(Submission.status == SubmissionStatus.APPROVED)
        .order_by(Submission.id.asc(), Point.id.asc())
    )

    squad_query = select(Squad.id).order_by(Squad.id.asc())

    if cohort_id is not None:
        query = query.where(Submission.cohort_id == cohort_id)
        squad_query = squad_query.where(Squad.cohort_id == cohort_id)

    result = await db.execute(query)
    standings = format_point_sums(result.mappings().all())

    result = await db.execute(squad_query)
    squad_ids = [row[0] for row in result.all()]

    squads = sort_by_squad(standings.values(), squad_ids)

    logger.info(
        f"Collected {len(standings)} submissions across {len(squads)} squads"
        + (f" (cohort {cohort_id})" if cohort_id is not None else "")
    )

    return squads
