"""
storysquad/orm/cohort.py
Cohorts, children and their story submissions.

Children and submissions are owned by the intake/moderation flow; the
tournament engine only reads them.
"""
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any, Dict

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, Enum as SQLEnum

from storysquad.orm.base import Base


class SubmissionStatus(str, PyEnum):
    """Moderation status of a submission"""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Cohort(Base):
    """A batch of children working through the same story."""
    __tablename__ = "cohorts"

    id = Column(Integer, primary_key=True, index=True)
    story_id = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<Cohort(id={self.id}, story={self.story_id})>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "story_id": self.story_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Child(Base):
    __tablename__ = "children"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    cohort_id = Column(
        Integer,
        ForeignKey("cohorts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<Child(id={self.id}, cohort={self.cohort_id})>"


class Submission(Base):
    """
    One creative work entered by a child.

    The accumulated point value is not stored here: it is the sum of the
    allotment rows in the points ledger.
    """
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, index=True)
    child_id = Column(
        Integer,
        ForeignKey("children.id", ondelete="RESTRICT"),
        nullable=False
    )
    cohort_id = Column(
        Integer,
        ForeignKey("cohorts.id", ondelete="RESTRICT"),
        nullable=False
    )
    status = Column(
        SQLEnum(SubmissionStatus, create_constraint=True),
        nullable=False,
        default=SubmissionStatus.PENDING
    )
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_submissions_cohort_status', 'cohort_id', 'status'),
        Index('idx_submissions_child', 'child_id'),
    )

    def __repr__(self):
        return f"<Submission(id={self.id}, child={self.child_id}, status={self.status})>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "child_id": self.child_id,
            "cohort_id": self.cohort_id,
            "status": self.status.value if self.status else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
