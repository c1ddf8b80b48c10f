"""Pydantic schemas for candidates."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CandidateStatus(str, Enum):
    """Pipeline status shown on a candidate card."""
    AVAILABLE = "Available"
    INTERVIEWING = "Interviewing"
    OFFER = "Offer"
    HIRED = "Hired"


class CandidateFilter(str, Enum):
    """Filter tabs of the candidate list."""
    ALL = "All Candidates"
    MINE = "My Candidates"
    HIRED = "Hired"
    PINNED = "Pinned"


def _coerce_identifier(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class Candidate(BaseModel):
    """A canonical or transient candidate record as displayed to a user.

    ``is_pinned`` and ``is_interested`` are joined from the viewing user's
    preference overlay at read time and are never persisted with the record.
    """

    model_config = ConfigDict(from_attributes=True)

    local_id: Optional[str] = Field(None, description="Canonical store id, absent for transient records")
    external_id: Optional[str] = Field(None, description="ATS-assigned id")
    name: str = Field(..., min_length=1, max_length=255)

    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None

    role: Optional[str] = None
    current_company: Optional[str] = None
    location: Optional[str] = None
    reference: Optional[str] = None
    notice_period: Optional[str] = None
    current_salary: Optional[str] = None
    expected_salary: Optional[str] = None
    owner: Optional[str] = None
    university: Optional[str] = None
    diploma: Optional[str] = None

    status: CandidateStatus = CandidateStatus.AVAILABLE
    visibility: bool = True
    created_by: Optional[str] = None
    created_by_name: Optional[str] = None
    source: Optional[str] = None
    avatar_url: Optional[str] = None
    added_at: Optional[str] = None
    interested_count: int = 0

    is_pinned: bool = False
    is_interested: bool = False
    is_external_only: bool = False

    @field_validator("local_id", "external_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v):
        """ATS ids arrive as integers; keep every identifier a trimmed string."""
        return _coerce_identifier(v)

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v):
        return v or CandidateStatus.AVAILABLE


class CandidateCreate(BaseModel):
    """Fields accepted when inserting a candidate into the canonical store."""

    name: str = Field(..., min_length=1, max_length=255)
    external_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    role: Optional[str] = None
    current_company: Optional[str] = None
    location: Optional[str] = None
    reference: Optional[str] = None
    notice_period: Optional[str] = None
    current_salary: Optional[str] = None
    expected_salary: Optional[str] = None
    owner: Optional[str] = None
    university: Optional[str] = None
    diploma: Optional[str] = None
    source: Optional[str] = None
    avatar_url: Optional[str] = None
    added_at: Optional[str] = None
    status: CandidateStatus = CandidateStatus.AVAILABLE
    visibility: bool = True

    @field_validator("external_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v):
        return _coerce_identifier(v)


class CandidateUpdate(BaseModel):
    """Partial update; only fields explicitly set are written."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    external_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    role: Optional[str] = None
    current_company: Optional[str] = None
    location: Optional[str] = None
    reference: Optional[str] = None
    notice_period: Optional[str] = None
    current_salary: Optional[str] = None
    expected_salary: Optional[str] = None
    owner: Optional[str] = None
    status: Optional[CandidateStatus] = None
    visibility: Optional[bool] = None

    @field_validator("external_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v):
        return _coerce_identifier(v)


class RegistrationForm(BaseModel):
    """Registration form submitted by a partner, in ATS field naming."""

    full_name: str = Field(..., min_length=1, max_length=255)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    linkedin_url: Optional[str] = None
    current_position: Optional[str] = None
    current_company: Optional[str] = None
    address: Optional[str] = None
    location: Optional[str] = None
    reference: Optional[str] = None
    source: Optional[str] = None
    university: Optional[str] = None
    diploma: Optional[str] = None
    selected_job_id: Optional[str] = None

    @field_validator("selected_job_id", mode="before")
    @classmethod
    def coerce_job_id(cls, v):
        return _coerce_identifier(v)
