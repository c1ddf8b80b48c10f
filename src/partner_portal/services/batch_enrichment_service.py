"""Sequential contact enrichment over a list of displayed candidates."""

import asyncio
import time
from collections import Counter
from typing import AsyncIterator, Dict, List, Optional

import structlog

from partner_portal.core.config import settings
from partner_portal.core.error_handling import PortalError
from partner_portal.core.identity import pin_key
from partner_portal.core.interfaces import AtsGateway, CanonicalStore
from partner_portal.core.logging import performance_logger
from partner_portal.schemas.candidate import Candidate, CandidateUpdate
from partner_portal.schemas.enrichment import (
    BatchItemOutcome,
    BatchItemReason,
    BatchLogLevel,
    ContactLookupResult,
    LookupOutcome,
    StepResult,
    StepStatus,
    SyncResult,
)
from .enrichment_service import ContactEnrichmentService, Sleep

logger = structlog.get_logger(__name__)

SKIPPED_MESSAGE = "Skipped - No LinkedIn URL."


class BatchEnrichmentService:
    """Runs the contact lookup for each candidate, one at a time, in input order.

    The provider is rate-sensitive, so every lookup is preceded by a fixed
    throttle and nothing runs concurrently. Failed items are reported and
    never retried within the same run.
    """

    def __init__(
        self,
        enrichment: ContactEnrichmentService,
        store: Optional[CanonicalStore] = None,
        ats: Optional[AtsGateway] = None,
        throttle_seconds: Optional[float] = None,
        sleep: Optional[Sleep] = None,
    ):
        """Initialize the orchestrator.

        Args:
            enrichment: Single-candidate lookup workflow
            store: Canonical store receiving found contact data
            ats: ATS receiving a best-effort copy of found contact data
            throttle_seconds: Pause before each lookup (defaults to settings)
            sleep: Awaitable delay function (defaults to ``asyncio.sleep``)
        """
        self.enrichment = enrichment
        self.store = store
        self.ats = ats
        self.throttle_seconds = (
            settings.batch_throttle_seconds if throttle_seconds is None else throttle_seconds
        )
        self.sleep = sleep or asyncio.sleep

    def _update_canonical(self, candidate: Candidate, result: ContactLookupResult) -> StepResult:
        if self.store is None or candidate.is_external_only or not candidate.local_id:
            return StepResult(status=StepStatus.SKIPPED, message="Candidate is not stored locally.")

        fields: Dict[str, str] = {}
        if result.email:
            fields["email"] = result.email
        if result.phone:
            fields["phone"] = result.phone

        try:
            self.store.update_candidate(candidate.local_id, CandidateUpdate(**fields))
        except PortalError as e:
            logger.error("Canonical update failed", candidate_id=candidate.local_id, error=e.message)
            return StepResult(status=StepStatus.FAILED, message=e.message)
        return StepResult(status=StepStatus.OK)

    async def _update_ats(self, candidate: Candidate, result: ContactLookupResult) -> Optional[StepResult]:
        if self.ats is None or not candidate.external_id:
            return None

        fields: Dict[str, str] = {}
        if result.email:
            fields["email"] = result.email
        if result.phone:
            fields["phone_number"] = result.phone

        try:
            await self.ats.update_candidate(candidate.external_id, fields)
        except PortalError as e:
            logger.warning("ATS propagation failed", external_id=candidate.external_id, error=e.message)
            return StepResult(status=StepStatus.FAILED, message=e.message)
        return StepResult(status=StepStatus.OK)

    async def _process(self, candidate: Candidate) -> Dict:
        if not (candidate.linkedin_url or "").strip():
            return dict(level=BatchLogLevel.WARNING, reason=BatchItemReason.SKIPPED, message=SKIPPED_MESSAGE)

        await self.sleep(self.throttle_seconds)
        result = await self.enrichment.lookup_contact_info(candidate.linkedin_url)

        if result.outcome == LookupOutcome.ERROR:
            return dict(
                level=BatchLogLevel.ERROR,
                reason=BatchItemReason.LOOKUP_FAILED,
                message=f"Failed: {result.error}",
            )
        if result.outcome == LookupOutcome.NO_CONTACT_INFO:
            return dict(
                level=BatchLogLevel.WARNING,
                reason=BatchItemReason.NO_CONTACT_INFO,
                message="No contact info found.",
            )

        sync = SyncResult(
            primary=self._update_canonical(candidate, result),
            secondary=await self._update_ats(candidate, result),
        )
        if sync.primary.status == StepStatus.FAILED:
            return dict(
                level=BatchLogLevel.ERROR,
                reason=BatchItemReason.UPDATE_FAILED,
                message=f"Found contact but failed to save: {sync.primary.message}",
                email=result.email,
                phone=result.phone,
                sync=sync,
            )
        return dict(
            level=BatchLogLevel.SUCCESS,
            reason=BatchItemReason.ENRICHED,
            message="Success: Found Contact.",
            email=result.email,
            phone=result.phone,
            sync=sync,
        )

    async def run_batch(self, candidates: List[Candidate]) -> AsyncIterator[BatchItemOutcome]:
        """Enrich candidates sequentially, yielding one outcome per candidate.

        Args:
            candidates: Candidates in display order

        Yields:
            BatchItemOutcome with ``processed`` counting up to ``total``
        """
        total = len(candidates)
        counts: Counter = Counter()
        start_time = time.time()
        logger.info("Batch enrichment started", total=total)

        try:
            for processed, candidate in enumerate(candidates, start=1):
                details = await self._process(candidate)
                outcome = BatchItemOutcome(
                    candidate_name=candidate.name,
                    candidate_key=pin_key(candidate),
                    processed=processed,
                    total=total,
                    **details,
                )
                counts[outcome.reason] += 1
                logger.info(
                    "Batch item processed",
                    candidate=candidate.name,
                    level=outcome.level.value,
                    reason=outcome.reason.value,
                    processed=processed,
                    total=total,
                )
                yield outcome
        finally:
            performance_logger.log_processing_metrics(
                "batch_enrichment",
                items_processed=sum(counts.values()),
                duration_seconds=time.time() - start_time,
                success_count=counts[BatchItemReason.ENRICHED],
                error_count=counts[BatchItemReason.LOOKUP_FAILED] + counts[BatchItemReason.UPDATE_FAILED],
                skipped_count=counts[BatchItemReason.SKIPPED],
                no_contact_count=counts[BatchItemReason.NO_CONTACT_INFO],
                total=total,
            )
