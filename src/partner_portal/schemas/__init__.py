"""Pydantic schemas for data validation and serialization."""

from .candidate import (
    Candidate,
    CandidateCreate,
    CandidateFilter,
    CandidateStatus,
    CandidateUpdate,
    RegistrationForm,
)
from .duplicate import DuplicateCheckRequest, DuplicateCheckResult, MatchField
from .enrichment import (
    BatchItemOutcome,
    BatchItemReason,
    BatchLogLevel,
    ContactLookupResult,
    EnrichmentJob,
    EnrichmentStatus,
    LookupOutcome,
    StepResult,
    StepStatus,
    SyncResult,
)
from .registration import RegistrationResult
from .session import UserRole, UserSession

__all__ = [
    "Candidate", "CandidateCreate", "CandidateFilter", "CandidateStatus", "CandidateUpdate", "RegistrationForm",
    "DuplicateCheckRequest", "DuplicateCheckResult", "MatchField",
    "BatchItemOutcome", "BatchItemReason", "BatchLogLevel", "ContactLookupResult",
    "EnrichmentJob", "EnrichmentStatus", "LookupOutcome", "StepResult", "StepStatus", "SyncResult",
    "RegistrationResult", "UserRole", "UserSession",
]
