"""
Vote Tally Engine

Counts ballots for every open faceoff and picks one winner each.

Winner rules, in order:
1. Bye -> side A advances
2. Strictly more votes wins
3. Equal votes (zero included) -> higher seed points win;
   equal seed points -> side A, the higher seed by rank order

Only unresolved faceoffs are read, so a retry never re-tallies a faceoff
that was already credited.
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storysquad.exceptions import DuplicateVoteError, InvalidVoteError, NotFoundError
from storysquad.orm.faceoff import DecidedBy, Faceoff, Vote
from storysquad.orm.squad import Member
from storysquad.schemas.tournament import FaceoffResult

logger = logging.getLogger(__name__)

Ballot = Tuple[int, int]  # (voter member_id, chosen submission_id)


def tally_faceoff(faceoff: Faceoff, ballots: Iterable[Ballot]) -> FaceoffResult:
    """
    Decide one faceoff from its ballots.

    Ballots are taken in the order given; a voter's later ballots and
    ballots for a submission outside the faceoff are ignored.
    """
    votes_a = 0
    votes_b = 0
    seen_voters = set()

    for member_id, submission_id in ballots:
        if member_id in seen_voters:
            logger.warning(f"Faceoff {faceoff.id}: ignoring repeat ballot from member {member_id}")
            continue
        seen_voters.add(member_id)

        if submission_id == faceoff.submission_a_id:
            votes_a += 1
        elif faceoff.submission_b_id is not None and submission_id == faceoff.submission_b_id:
            votes_b += 1
        else:
            logger.warning(
                f"Faceoff {faceoff.id}: ignoring ballot for submission {submission_id} "
                f"which is not in this faceoff"
            )

    a_wins = True
    if faceoff.submission_b_id is None:
        decided_by = DecidedBy.BYE
    elif votes_a != votes_b:
        decided_by = DecidedBy.VOTES
        a_wins = votes_a > votes_b
    else:
        decided_by = DecidedBy.TIEBREAK if votes_a > 0 else DecidedBy.NO_VOTES
        a_wins = (faceoff.seed_points_a or 0) >= (faceoff.seed_points_b or 0)

    if a_wins:
        winner, loser = faceoff.submission_a_id, faceoff.submission_b_id
    else:
        winner, loser = faceoff.submission_b_id, faceoff.submission_a_id

    return FaceoffResult(
        faceoff_id=faceoff.id,
        squad_id=faceoff.squad_id,
        week=faceoff.week,
        winner_submission_id=winner,
        loser_submission_id=loser,
        votes_a=votes_a,
        votes_b=votes_b,
        decided_by=decided_by.value,
    )


async def get_unresolved_faceoffs(
    db: AsyncSession,
    week: Optional[str] = None
) -> List[Faceoff]:
    """Lock and return open faceoffs, ordered by id."""
    query = (
        select(Faceoff)
        .where(Faceoff.resolved.is_(False))
        .order_by(Faceoff.id.asc())
        .with_for_update()
    )

    if week is not None:
        query = query.where(Faceoff.week == week)

    result = await db.execute(query)
    return list(result.scalars().all())


async def count_votes(
    db: AsyncSession,
    week: Optional[str] = None
) -> List[FaceoffResult]:
    """
    Tally every unresolved faceoff.

    Args:
        db: Transaction-scoped session
        week: Only this week's faceoffs (all open faceoffs when None)

    Returns:
        One FaceoffResult per open faceoff, ordered by faceoff id
    """
    faceoffs = await get_unresolved_faceoffs(db, week)

    if not faceoffs:
        logger.info("No unresolved faceoffs to tally")
        return []

    result = await db.execute(
        select(Vote.faceoff_id, Vote.member_id, Vote.submission_id)
        .where(Vote.faceoff_id.in_([f.id for f in faceoffs]))
        .order_by(Vote.id.asc())
    )

    ballots: Dict[int, List[Ballot]] = defaultdict(list)
    for faceoff_id, member_id, submission_id in result.all():
        ballots[faceoff_id].append((member_id, submission_id))

    results = [tally_faceoff(faceoff, ballots.get(faceoff.id, [])) for faceoff in faceoffs]

    logger.info(
        f"Tallied {len(results)} faceoffs "
        f"({sum(len(b) for b in ballots.values())} ballots)"
    )
    return results


async def cast_vote(
    db: AsyncSession,
    faceoff_id: int,
    member_id: int,
    submission_id: int
) -> Vote:
    """
    Record one child's ballot.

    Raises:
        NotFoundError: faceoff or voter doesn't exist
        InvalidVoteError: faceoff already resolved, or submission not in it
        DuplicateVoteError: voter already voted on this faceoff
    """
    faceoff = await db.get(Faceoff, faceoff_id)
    if faceoff is None:
        raise NotFoundError(f"Faceoff {faceoff_id} not found")

    voter = await db.get(Member, member_id)
    if voter is None:
        raise NotFoundError(f"Member {member_id} not found")

    if faceoff.resolved:
        raise InvalidVoteError(f"Faceoff {faceoff_id} is already resolved")

    if faceoff.is_bye or submission_id not in (faceoff.submission_a_id, faceoff.submission_b_id):
        raise InvalidVoteError(f"Submission {submission_id} is not contesting faceoff {faceoff_id}")

    result = await db.execute(
        select(Vote.id).where(Vote.faceoff_id == faceoff_id, Vote.member_id == member_id)
    )
    if result.first() is not None:
        raise DuplicateVoteError(f"Member {member_id} already voted on faceoff {faceoff_id}")

    vote = Vote(faceoff_id=faceoff_id, member_id=member_id, submission_id=submission_id)
    db.add(vote)

    try:
        await db.flush()
    except IntegrityError:
        # Another ballot from the same voter landed concurrently
        raise DuplicateVoteError(f"Member {member_id} already voted on faceoff {faceoff_id}")

    return vote
