"""Schemas for contact enrichment lookups and batch runs."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class EnrichmentStatus(str, Enum):
    """Lookup job status as reported by the enrichment provider."""
    SUBMITTED = "submitted"
    SEARCHING = "searching"
    PROGRESS = "progress"
    WAITING = "waiting"
    COMPLETE = "complete"
    FAILED = "failed"
    NOT_QUEUED = "not_queued"

    @classmethod
    def parse(cls, value: Any) -> "EnrichmentStatus":
        """Parse a provider status string ("not queued" included); unknown values map to SUBMITTED."""
        if not isinstance(value, str):
            return cls.SUBMITTED
        normalized = value.strip().lower().replace(" ", "_")
        try:
            return cls(normalized)
        except ValueError:
            return cls.SUBMITTED


IN_PROGRESS_STATUSES = frozenset({
    EnrichmentStatus.SEARCHING,
    EnrichmentStatus.PROGRESS,
    EnrichmentStatus.WAITING,
})

TERMINAL_STATUSES = frozenset({
    EnrichmentStatus.COMPLETE,
    EnrichmentStatus.FAILED,
    EnrichmentStatus.NOT_QUEUED,
})

SUCCESS_STATUSES = frozenset({
    EnrichmentStatus.COMPLETE,
    EnrichmentStatus.NOT_QUEUED,
})


class EnrichmentEmail(BaseModel):
    address: str
    category: Optional[str] = None
    smtp_valid: Optional[str] = None


class EnrichmentPhone(BaseModel):
    number: str
    category: Optional[str] = None


class EnrichmentJob(BaseModel):
    """One lookup, from submission to a terminal status. Never persisted."""

    id: Optional[str] = None
    status: EnrichmentStatus = EnrichmentStatus.SUBMITTED
    emails: List[EnrichmentEmail] = Field(default_factory=list)
    phones: List[EnrichmentPhone] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def has_contact_data(self) -> bool:
        return bool(self.emails or self.phones)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "EnrichmentJob":
        """Build a job from a provider profile payload."""
        emails = [
            EnrichmentEmail(
                address=entry["email"],
                category=entry.get("type"),
                smtp_valid=entry.get("smtp_valid"),
            )
            for entry in payload.get("emails") or []
            if isinstance(entry, dict) and entry.get("email")
        ]
        phones = [
            EnrichmentPhone(number=entry["number"], category=entry.get("type"))
            for entry in payload.get("phones") or []
            if isinstance(entry, dict) and entry.get("number")
        ]
        job_id = payload.get("id")
        return cls(
            id=str(job_id) if job_id is not None else None,
            status=EnrichmentStatus.parse(payload.get("status")),
            emails=emails,
            phones=phones,
        )


class LookupOutcome(str, Enum):
    """What a single contact lookup produced."""
    FOUND = "found"
    NO_CONTACT_INFO = "no_contact_info"
    ERROR = "error"


class ContactLookupResult(BaseModel):
    """Caller-facing result of a contact lookup; errors are data, not exceptions."""

    outcome: LookupOutcome
    email: Optional[str] = None
    phone: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.outcome == LookupOutcome.FOUND


class StepStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"


class StepResult(BaseModel):
    status: StepStatus
    message: Optional[str] = None


class SyncResult(BaseModel):
    """Write outcome split into the canonical store (primary) and ATS propagation (secondary)."""

    primary: StepResult
    secondary: Optional[StepResult] = None


class BatchLogLevel(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class BatchItemReason(str, Enum):
    ENRICHED = "enriched"
    SKIPPED = "skipped"
    NO_CONTACT_INFO = "no_contact_info"
    LOOKUP_FAILED = "lookup_failed"
    UPDATE_FAILED = "update_failed"


class BatchItemOutcome(BaseModel):
    """Progress log entry emitted after each candidate of a batch run."""

    candidate_name: str
    candidate_key: Optional[str] = None
    level: BatchLogLevel
    reason: BatchItemReason
    message: str
    email: Optional[str] = None
    phone: Optional[str] = None
    sync: Optional[SyncResult] = None
    processed: int
    total: int
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class EnrichmentRequest(BaseModel):
    linkedin_url: str = ""
