"""Service layer for business logic."""

from .activity_log_service import ActivityLogService
from .batch_enrichment_service import BatchEnrichmentService
from .candidate_service import CandidateService
from .duplicate_detection_service import DuplicateDetectionService
from .enrichment_service import ContactEnrichmentService
from .reconciliation_service import PinService, ReconciliationService
from .registration_service import RegistrationService

__all__ = [
    "ActivityLogService",
    "BatchEnrichmentService",
    "CandidateService",
    "ContactEnrichmentService",
    "DuplicateDetectionService",
    "PinService",
    "ReconciliationService",
    "RegistrationService",
]
