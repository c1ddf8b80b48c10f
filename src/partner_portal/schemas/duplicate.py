"""Schemas for the pre-registration duplicate probe."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .candidate import Candidate


class MatchField(str, Enum):
    """Field on which an existing ATS candidate matched."""
    EMAIL = "email"
    PHONE = "phone"
    LINKEDIN = "linkedin"
    NAME = "name"
    NONE = "none"


class DuplicateCheckRequest(BaseModel):
    """Contact fields of a prospective new candidate."""

    email: Optional[str] = None
    full_name: Optional[str] = None
    linkedin_url: Optional[str] = None
    phone: Optional[str] = Field(None, description="Phone number as typed in the form")


class DuplicateCheckResult(BaseModel):
    """Outcome of a duplicate probe. Lives only for one registration attempt."""

    is_duplicate: bool = False
    matched_by: MatchField = MatchField.NONE
    matched_by_label: Optional[str] = None
    matched_candidate: Optional[Candidate] = None

    @classmethod
    def no_match(cls) -> "DuplicateCheckResult":
        return cls()
