"""
storysquad/orm/squad.py
Squad -> Team -> Member grouping.

A squad competes as a unit for the week; each squad is split into teams and
every participating child holds exactly one membership.
All three tables are emptied by the test reset.
"""
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Column, Integer, DateTime, ForeignKey, Index, UniqueConstraint, CheckConstraint

from storysquad.orm.base import Base


class Squad(Base):
    __tablename__ = "squads"

    id = Column(Integer, primary_key=True, index=True)
    cohort_id = Column(
        Integer,
        ForeignKey("cohorts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    points = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint('points >= 0', name='ck_squad_points_non_negative'),
    )

    def __repr__(self):
        return f"<Squad(id={self.id}, cohort={self.cohort_id}, points={self.points})>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "cohort_id": self.cohort_id,
            "points": self.points,
        }


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    squad_id = Column(
        Integer,
        ForeignKey("squads.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    points = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint('points >= 0', name='ck_team_points_non_negative'),
    )

    def __repr__(self):
        return f"<Team(id={self.id}, squad={self.squad_id}, points={self.points})>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "squad_id": self.squad_id,
            "points": self.points,
        }


class Member(Base):
    """A child's seat on a team."""
    __tablename__ = "members"

    id = Column(Integer, primary_key=True, index=True)
    child_id = Column(
        Integer,
        ForeignKey("children.id", ondelete="CASCADE"),
        nullable=False
    )
    team_id = Column(
        Integer,
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False
    )
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('child_id', name='uq_member_child'),
        Index('idx_members_team', 'team_id'),
    )

    def __repr__(self):
        return f"<Member(id={self.id}, child={self.child_id}, team={self.team_id})>"
