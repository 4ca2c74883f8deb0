"""
Cluster Generation

Builds the squad -> team -> member structure for a cohort from the children
who have an approved submission and no membership yet.

Deterministic: children are taken in ascending id, chunked into squads of
SQUAD_SIZE, and each squad is chunked into teams of TEAM_SIZE. The last
squad (and its last team) may be smaller.
"""
import logging
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storysquad.config.settings import Settings
from storysquad.orm.cohort import Submission, SubmissionStatus
from storysquad.orm.squad import Member, Squad, Team
from storysquad.services.cohort_service import get_cohort

logger = logging.getLogger(__name__)


def chunk(items: Sequence[int], size: int) -> List[List[int]]:
    """Split ``items`` into consecutive groups of ``size``."""
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


async def cluster_generation(
    cohort_id: int,
    db: AsyncSession,
    squad_size: Optional[int] = None,
    team_size: Optional[int] = None
) -> List[int]:
    """
    Place every unclustered child of a cohort into a squad and team.

    Args:
        cohort_id: Cohort to cluster
        db: Transaction-scoped session
        squad_size: Children per squad (defaults to Settings.SQUAD_SIZE)
        team_size: Children per team (defaults to Settings.TEAM_SIZE)

    Returns:
        IDs of the newly created squads

    Raises:
        NotFoundError: cohort doesn't exist
    """
    squad_size = squad_size or Settings.SQUAD_SIZE
    team_size = team_size or Settings.TEAM_SIZE

    await get_cohort(cohort_id, db)

    result = await db.execute(
        select(Submission.child_id)
        .where(
            Submission.cohort_id == cohort_id,
            Submission.status == SubmissionStatus.APPROVED,
            Submission.child_id.not_in(select(Member.child_id)),
        )
        .distinct()
        .order_by(Submission.child_id.asc())
    )
    child_ids = [row[0] for row in result.all()]

    if not child_ids:
        logger.info(f"Cohort {cohort_id}: no unclustered children")
        return []

    squad_ids = []
    for squad_children in chunk(child_ids, squad_size):
        squad = Squad(cohort_id=cohort_id, points=0)
        db.add(squad)
        await db.flush()

        for team_children in chunk(squad_children, team_size):
            team = Team(squad_id=squad.id, points=0)
            db.add(team)
            await db.flush()

            db.add_all([Member(child_id=child_id, team_id=team.id) for child_id in team_children])

        squad_ids.append(squad.id)

    await db.flush()

    if len(child_ids) % squad_size:
        logger.warning(
            f"Cohort {cohort_id}: last squad has {len(child_ids) % squad_size} "
            f"of {squad_size} children"
        )
    logger.info(f"Cohort {cohort_id}: clustered {len(child_ids)} children into {len(squad_ids)} squads")

    return squad_ids
