from .tournament import SubmissionStanding, MatchupDraft, FaceoffResult, CycleReport

__all__ = ["SubmissionStanding", "MatchupDraft", "FaceoffResult", "CycleReport"]
