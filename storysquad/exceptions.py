"""
storysquad/exceptions.py
Typed exceptions for the weekly tournament engine.

Every error carries an HTTP-style status code so an outer surface can map
it without inspecting the message:
- NotFoundError          -> 404 (cohort / faceoff / member absent)
- InvalidVoteError       -> 400
- DuplicateVoteError     -> 409
- InsufficientDataError  -> 422 (squad skipped, cycle continues)
- DataIntegrityError     -> 500 (cycle aborted, transaction rolled back)
- TransactionError       -> 500 (wrapped lower-level database failure)
"""


class StorySquadException(Exception):
    """Base exception for the tournament engine"""
    status_code: int = 500

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(StorySquadException):
    """
    Raised when a referenced cohort or entity doesn't exist.
    """
    status_code = 404

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, self.status_code)


class DataIntegrityError(StorySquadException):
    """
    Raised when a referential invariant is violated.

    Examples:
    - Member row points at a team that no longer exists
    - Team row points at a squad that no longer exists
    - Faceoff winner has no team to credit
    """
    status_code = 500

    def __init__(self, message: str = "Data integrity violated"):
        super().__init__(message, self.status_code)


class InsufficientDataError(StorySquadException):
    """Raised when a squad has no eligible submissions for the cycle."""
    status_code = 422

    def __init__(self, message: str = "Not enough submissions to pair"):
        super().__init__(message, self.status_code)


class TransactionError(StorySquadException):
    """Wraps any lower-level database failure; message is preserved."""
    status_code = 500

    def __init__(self, message: str = "Transaction failed"):
        super().__init__(message, self.status_code)


class InvalidVoteError(StorySquadException):
    """Raised when a ballot names a closed faceoff or a submission outside it."""
    status_code = 400

    def __init__(self, message: str = "Invalid vote"):
        super().__init__(message, self.status_code)


class DuplicateVoteError(StorySquadException):
    """Raised when a voter has already cast a ballot on a faceoff."""
    status_code = 409

    def __init__(self, message: str = "Vote already cast for this faceoff"):
        super().__init__(message, self.status_code)
