"""
Pydantic Schemas for the Weekly Tournament Cycles

Carrier models passed between the aggregation, pairing, tally and standings
stages, plus the per-cycle report returned to the CLI.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Generation
# ============================================================================

class SubmissionStanding(BaseModel):
    """An approved submission with its summed allotment points."""
    submission_id: int
    child_id: int
    member_id: int
    team_id: int
    squad_id: int
    points: int = Field(0, ge=0, description="Sum of allotment points")

    model_config = ConfigDict(frozen=True)


class MatchupDraft(BaseModel):
    """A faceoff ready for insertion. Side B is empty for a bye."""
    squad_id: int
    slot: int = Field(..., ge=1)
    week: str
    submission_a_id: int
    submission_b_id: Optional[int] = None
    seed_points_a: int = Field(0, ge=0)
    seed_points_b: Optional[int] = Field(None, ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def is_bye(self) -> bool:
        return self.submission_b_id is None


# ============================================================================
# Resolution
# ============================================================================

class FaceoffResult(BaseModel):
    """Winner determination for one faceoff."""
    faceoff_id: int
    squad_id: int
    week: str
    winner_submission_id: int
    loser_submission_id: Optional[int] = None
    votes_a: int = Field(0, ge=0)
    votes_b: int = Field(0, ge=0)
    decided_by: str


# ============================================================================
# Reports
# ============================================================================

class CycleReport(BaseModel):
    """Outcome of one generation or resolution run."""
    cycle: str
    week: Optional[str] = None
    faceoff_ids: List[int] = Field(default_factory=list)
    skipped_squads: List[int] = Field(default_factory=list)
    reused_existing: bool = False
    resolved_count: int = 0
    squad_credits: Dict[int, int] = Field(default_factory=dict)
