from .base import Base

# Story intake
from .cohort import Cohort, Child, Submission, SubmissionStatus

# Squad structure
from .squad import Squad, Team, Member

# Weekly tournament
from .faceoff import Faceoff, Vote, Point, DecidedBy


__all__ = [
    "Base",
    "Cohort",
    "Child",
    "Submission",
    "SubmissionStatus",
    "Squad",
    "Team",
    "Member",
    "Faceoff",
    "Vote",
    "Point",
    "DecidedBy",
]
