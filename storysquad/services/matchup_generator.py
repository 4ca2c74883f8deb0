"""
Matchup Generator

Pairs each squad's point-sorted submissions into the week's faceoffs:
- Rank 1 vs 2, 3 vs 4, ... down the sorted order
- Exactly ``matchups_per_squad`` faceoffs when the squad has enough entries,
  lower-ranked surplus is left out
- An odd trailing entry gets a bye (no opponent)
- No randomness: identical input gives identical output
"""
import logging
from typing import Dict, List, Optional, Sequence

from storysquad.config.settings import Settings
from storysquad.exceptions import InsufficientDataError
from storysquad.schemas.tournament import MatchupDraft, SubmissionStanding
from storysquad.services.submission_aggregator import standing_sort_key

logger = logging.getLogger(__name__)


def pair_squad(
    squad_id: int,
    standings: Sequence[SubmissionStanding],
    week: str,
    matchups_per_squad: int
) -> List[MatchupDraft]:
    """
    Build one squad's bracket.

    Args:
        squad_id: Squad being paired
        standings: The squad's submissions
        week: Cycle marker stamped on every draft
        matchups_per_squad: Bracket size

    Returns:
        Drafts in slot order (slot 1 holds the two highest-point entries)

    Raises:
        InsufficientDataError: squad has no submissions
    """
    if not standings:
        raise InsufficientDataError(f"Squad {squad_id} has no eligible submissions")

    # Sorted again so callers can't break determinism with a stale order
    ordered = sorted(standings, key=standing_sort_key)
    contested = ordered[: 2 * matchups_per_squad]

    if len(ordered) > len(contested):
        logger.info(
            f"Squad {squad_id}: {len(ordered) - len(contested)} lower-ranked "
            f"submissions left out of the bracket"
        )

    drafts = []
    for slot, index in enumerate(range(0, len(contested), 2), start=1):
        side_a = contested[index]
        side_b = contested[index + 1] if index + 1 < len(contested) else None

        drafts.append(MatchupDraft(
            squad_id=squad_id,
            slot=slot,
            week=week,
            submission_a_id=side_a.submission_id,
            submission_b_id=side_b.submission_id if side_b else None,
            seed_points_a=side_a.points,
            seed_points_b=side_b.points if side_b else None,
        ))

    if drafts[-1].is_bye:
        logger.info(f"Squad {squad_id}: submission {drafts[-1].submission_a_id} receives a bye")

    return drafts


def generate_matchups(
    squads: Dict[int, List[SubmissionStanding]],
    week: str,
    matchups_per_squad: Optional[int] = None
) -> List[MatchupDraft]:
    """
    Pair every squad, skipping squads with nothing to pair.

    Squads are processed in ascending id so the output order is stable.
    """
    if matchups_per_squad is None:
        matchups_per_squad = Settings.MATCHUPS_PER_SQUAD
    if matchups_per_squad < 1:
        raise ValueError("matchups_per_squad must be at least 1")

    drafts: List[MatchupDraft] = []

    for squad_id in sorted(squads):
        try:
            drafts.extend(pair_squad(squad_id, squads[squad_id], week, matchups_per_squad))
        except InsufficientDataError as e:
            logger.warning(f"Skipping squad {squad_id}: {e.message}")
            continue

    logger.info(f"Generated {len(drafts)} matchups for week {week}")
    return drafts
