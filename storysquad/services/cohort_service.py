"""
Cohort Service

Cohort lookup and submission moderation used around the weekly cycles.
"""
import logging
from typing import Any, Dict, List

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from storysquad.exceptions import NotFoundError
from storysquad.orm.cohort import Child, Cohort, Submission, SubmissionStatus
from storysquad.orm.faceoff import Point
from storysquad.orm.squad import Member, Team

logger = logging.getLogger(__name__)

MODERATION_STATUSES = (SubmissionStatus.APPROVED, SubmissionStatus.REJECTED)


async def get_cohorts(db: AsyncSession) -> List[Cohort]:
    """All cohorts, oldest first."""
    result = await db.execute(select(Cohort).order_by(Cohort.id.asc()))
    return list(result.scalars().all())


async def add_cohort(story_id: int, db: AsyncSession) -> Cohort:
    """Create a cohort working on ``story_id``."""
    cohort = Cohort(story_id=story_id)
    db.add(cohort)
    await db.flush()

    logger.info(f"Created cohort {cohort.id} for story {story_id}")
    return cohort


async def get_cohort(cohort_id: int, db: AsyncSession) -> Cohort:
    """
    Raises:
        NotFoundError: cohort doesn't exist
    """
    cohort = await db.get(Cohort, cohort_id)
    if cohort is None:
        raise NotFoundError(f"Cohort {cohort_id} not found")
    return cohort


async def get_submissions_by_cohort(cohort_id: int, db: AsyncSession) -> Dict[int, Dict[str, Any]]:
    """
    All submissions of a cohort keyed by submission ID.

    Each entry carries the child's name, moderation status, summed
    allotment points and the child's team/squad (None until clustered).

    Raises:
        NotFoundError: cohort doesn't exist
    """
    await get_cohort(cohort_id, db)

    points_subq = (
        select(
            Point.submission_id.label("submission_id"),
            func.sum(Point.value).label("points")
        )
        .where(Point.submission_id.isnot(None), Point.faceoff_id.is_(None))
        .group_by(Point.submission_id)
        .subquery()
    )

    result = await db.execute(
        select(
            Submission.id,
            Submission.child_id,
            Child.name.label("child_name"),
            Submission.status,
            func.coalesce(points_subq.c.points, 0).label("points"),
            Member.team_id,
            Team.squad_id,
        )
        .join(Child, Child.id == Submission.child_id)
        .join(points_subq, points_subq.c.submission_id == Submission.id, isouter=True)
        .join(Member, Member.child_id == Submission.child_id, isouter=True)
        .join(Team, Team.id == Member.team_id, isouter=True)
        .where(Submission.cohort_id == cohort_id)
        .order_by(Submission.id.asc())
    )

    submissions = {}
    for row in result.mappings().all():
        submissions[row["id"]] = {
            "id": row["id"],
            "child_id": row["child_id"],
            "child_name": row["child_name"],
            "status": row["status"].value if row["status"] else None,
            "points": int(row["points"] or 0),
            "team_id": row["team_id"],
            "squad_id": row["squad_id"],
        }

    return submissions


async def moderate_post(submission_id: int, status: str, db: AsyncSession) -> int:
    """
    Approve or reject a submission.

    Args:
        submission_id: Submission to moderate
        status: "APPROVED" or "REJECTED"

    Returns:
        Number of updated rows (0 when the submission doesn't exist)

    Raises:
        ValueError: status is not a moderation outcome
    """
    try:
        new_status = SubmissionStatus(status)
    except ValueError:
        raise ValueError(f"Invalid moderation status: {status!r}")

    if new_status not in MODERATION_STATUSES:
        raise ValueError(f"Invalid moderation status: {status!r}")

    result = await db.execute(
        update(Submission)
        .where(Submission.id == submission_id)
        .values(status=new_status)
    )

    if result.rowcount:
        logger.info(f"Submission {submission_id} moderated: {new_status.value}")
    return result.rowcount
