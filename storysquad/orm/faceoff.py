"""
Weekly Tournament ORM Models

Faceoffs, ballots and the points ledger:
- Deterministic SHA256 hash per faceoff (same input state, same hash)
- One ballot per (faceoff, voter)
- Append-only points ledger; totals on teams/squads are derived caches
"""
import hashlib
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, Dict

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey,
    Index, UniqueConstraint, CheckConstraint
)

from storysquad.orm.base import Base


# =============================================================================
# Enums
# =============================================================================

class DecidedBy(str, PyEnum):
    """How a faceoff winner was determined."""
    VOTES = "votes"          # strictly more ballots
    TIEBREAK = "tiebreak"    # equal ballots, higher seed points advance
    NO_VOTES = "no_votes"    # nobody voted, higher seed advances
    BYE = "bye"              # no opponent


# =============================================================================
# Model 1: Faceoff
# =============================================================================

class Faceoff(Base):
    __tablename__ = "faceoffs"

    id = Column(Integer, primary_key=True, index=True)
    squad_id = Column(
        Integer,
        ForeignKey("squads.id", ondelete="CASCADE"),
        nullable=False
    )
    slot = Column(Integer, nullable=False)
    week = Column(String(10), nullable=False)

    # Side A is always the higher seed; side B is NULL for a bye
    submission_a_id = Column(
        Integer,
        ForeignKey("submissions.id", ondelete="RESTRICT"),
        nullable=False
    )
    submission_b_id = Column(
        Integer,
        ForeignKey("submissions.id", ondelete="RESTRICT"),
        nullable=True
    )
    seed_points_a = Column(Integer, nullable=False, default=0)
    seed_points_b = Column(Integer, nullable=True)

    votes_a = Column(Integer, nullable=False, default=0)
    votes_b = Column(Integer, nullable=False, default=0)
    resolved = Column(Boolean, nullable=False, default=False)
    winner_submission_id = Column(
        Integer,
        ForeignKey("submissions.id", ondelete="RESTRICT"),
        nullable=True
    )
    decided_by = Column(String(16), nullable=True)

    faceoff_hash = Column(String(64), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    resolved_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint('week', 'squad_id', 'slot', name='uq_faceoff_week_squad_slot'),
        CheckConstraint('slot >= 1', name='ck_faceoff_slot_positive'),
        Index('idx_faceoffs_resolved_week', 'resolved', 'week'),
        Index('idx_faceoffs_squad', 'squad_id'),
    )

    @property
    def is_bye(self) -> bool:
        return self.submission_b_id is None

    def compute_faceoff_hash(self) -> str:
        """
        Compute deterministic SHA256 hash of the matchup.

        Hash formula:
        SHA256(f"{week}|{squad_id}|{slot}|{a}|{b}|{seed_a}|{seed_b}")
        with "-" standing in for the missing side of a bye.
        """
        combined = (
            f"{self.week}|"
            f"{self.squad_id}|"
            f"{self.slot}|"
            f"{self.submission_a_id}|"
            f"{self.submission_b_id if self.submission_b_id is not None else '-'}|"
            f"{self.seed_points_a}|"
            f"{self.seed_points_b if self.seed_points_b is not None else '-'}"
        )

        return hashlib.sha256(combined.encode()).hexdigest()

    def verify_hash(self) -> bool:
        """Verify stored hash matches computed hash."""
        if not self.faceoff_hash:
            return False
        return self.faceoff_hash == self.compute_faceoff_hash()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "squad_id": self.squad_id,
            "slot": self.slot,
            "week": self.week,
            "submission_a_id": self.submission_a_id,
            "submission_b_id": self.submission_b_id,
            "seed_points_a": self.seed_points_a,
            "seed_points_b": self.seed_points_b,
            "votes_a": self.votes_a,
            "votes_b": self.votes_b,
            "resolved": self.resolved,
            "winner_submission_id": self.winner_submission_id,
            "decided_by": self.decided_by,
            "faceoff_hash": self.faceoff_hash,
            "hash_valid": self.verify_hash(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
        }


# =============================================================================
# Model 2: Vote
# =============================================================================

class Vote(Base):
    __tablename__ = "votes"

    id = Column(Integer, primary_key=True, index=True)
    faceoff_id = Column(
        Integer,
        ForeignKey("faceoffs.id", ondelete="CASCADE"),
        nullable=False
    )
    member_id = Column(
        Integer,
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False
    )
    submission_id = Column(
        Integer,
        ForeignKey("submissions.id", ondelete="RESTRICT"),
        nullable=False
    )
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('faceoff_id', 'member_id', name='uq_vote_faceoff_voter'),
        Index('idx_votes_faceoff', 'faceoff_id'),
    )

    def __repr__(self):
        return f"<Vote(faceoff={self.faceoff_id}, voter={self.member_id}, choice={self.submission_id})>"


# =============================================================================
# Model 3: Point (append-only ledger)
# =============================================================================

class Point(Base):
    """
    Points ledger row.

    Allotment rows (faceoff_id NULL) are points children hand out to
    submissions during the week; credit rows (faceoff_id set) record the
    win credit given to a team when a faceoff resolves.
    """
    __tablename__ = "points"

    id = Column(Integer, primary_key=True, index=True)
    submission_id = Column(
        Integer,
        ForeignKey("submissions.id", ondelete="RESTRICT"),
        nullable=True
    )
    member_id = Column(
        Integer,
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=True
    )
    team_id = Column(
        Integer,
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=True
    )
    faceoff_id = Column(
        Integer,
        ForeignKey("faceoffs.id", ondelete="CASCADE"),
        nullable=True
    )
    week = Column(String(10), nullable=True)
    value = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint('value >= 0', name='ck_point_value_non_negative'),
        UniqueConstraint('faceoff_id', name='uq_point_faceoff_credit'),
        Index('idx_points_submission', 'submission_id'),
    )

    @property
    def is_credit(self) -> bool:
        return self.faceoff_id is not None

    def __repr__(self):
        kind = "credit" if self.is_credit else "allotment"
        return f"<Point({kind}, submission={self.submission_id}, value={self.value})>"
