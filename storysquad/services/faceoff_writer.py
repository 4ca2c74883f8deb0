"""
Faceoff Writer

Persists matchup drafts as faceoff rows inside the caller's transaction.
A failure on any row propagates so the whole bracket rolls back.
"""
import logging
from datetime import datetime
from typing import Dict, List, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storysquad.orm.faceoff import Faceoff
from storysquad.schemas.tournament import MatchupDraft

logger = logging.getLogger(__name__)


async def write_faceoffs(
    db: AsyncSession,
    matchups: Sequence[MatchupDraft]
) -> List[int]:
    """
    Insert drafts and return the new faceoff IDs in draft order.
    """
    if not matchups:
        return []

    now = datetime.utcnow()
    faceoffs = []

    for draft in matchups:
        faceoff = Faceoff(
            **draft.model_dump(),
            votes_a=0,
            votes_b=0,
            resolved=False,
            faceoff_hash="",  # Will compute
            created_at=now
        )
        faceoff.faceoff_hash = faceoff.compute_faceoff_hash()
        faceoffs.append(faceoff)

    db.add_all(faceoffs)
    await db.flush()

    ids = [faceoff.id for faceoff in faceoffs]
    logger.info(f"Inserted {len(ids)} faceoffs")
    return ids


async def get_faceoff_ids_by_squad(
    db: AsyncSession,
    week: str,
    squad_ids: Sequence[int]
) -> Dict[int, List[int]]:
    """squad_id -> IDs of that squad's faceoffs already generated for a week."""
    if not squad_ids:
        return {}

    result = await db.execute(
        select(Faceoff.squad_id, Faceoff.id)
        .where(Faceoff.week == week, Faceoff.squad_id.in_(squad_ids))
        .order_by(Faceoff.squad_id.asc(), Faceoff.slot.asc())
    )

    existing: Dict[int, List[int]] = {}
    for squad_id, faceoff_id in result.all():
        existing.setdefault(squad_id, []).append(faceoff_id)
    return existing
