"""Schemas for the candidate registration workflow."""

from typing import Optional

from pydantic import BaseModel

from .candidate import Candidate
from .duplicate import DuplicateCheckResult
from .enrichment import StepResult


class RegistrationResult(BaseModel):
    """Outcome of a registration attempt.

    ``created`` is False when the duplicate probe blocked the attempt; the
    match is then carried in ``duplicate`` for the user to review.
    """

    created: bool = False
    duplicate: Optional[DuplicateCheckResult] = None
    candidate: Optional[Candidate] = None
    external_candidate: Optional[Candidate] = None
    job_link: Optional[StepResult] = None
