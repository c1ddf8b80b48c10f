"""Tests for the batch enrichment orchestrator."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from partner_portal.core.error_handling import ExternalServiceError, StoreError
from partner_portal.schemas.candidate import Candidate
from partner_portal.schemas.enrichment import (
    BatchItemReason,
    BatchLogLevel,
    ContactLookupResult,
    LookupOutcome,
    StepStatus,
)
from partner_portal.services.batch_enrichment_service import (
    SKIPPED_MESSAGE,
    BatchEnrichmentService,
)

LOCAL_A = "11111111-1111-4111-8111-111111111111"


def _found(email="ana@mail.org", phone="+33 6 00 00 00 00"):
    return ContactLookupResult(outcome=LookupOutcome.FOUND, email=email, phone=phone)


@pytest.fixture
def enrichment():
    service = MagicMock()
    service.lookup_contact_info = AsyncMock(return_value=_found())
    return service


@pytest.fixture
def store():
    return MagicMock()


@pytest.fixture
def ats():
    gateway = MagicMock()
    gateway.update_candidate = AsyncMock()
    return gateway


@pytest.fixture
def batch(enrichment, store, ats, recording_sleep):
    return BatchEnrichmentService(enrichment, store=store, ats=ats, throttle_seconds=0.5, sleep=recording_sleep)


async def _collect(service, candidates):
    return [outcome async for outcome in service.run_batch(candidates)]


class TestRunBatch:

    @pytest.mark.asyncio
    async def test_missing_linkedin_url_is_skipped_without_delay(self, batch, enrichment, recording_sleep):
        outcomes = await _collect(batch, [
            Candidate(local_id=LOCAL_A, name="Ana Silva"),
            Candidate(name="Bruno Moreau", linkedin_url="   "),
        ])

        assert [o.reason for o in outcomes] == [BatchItemReason.SKIPPED, BatchItemReason.SKIPPED]
        assert all(o.level == BatchLogLevel.WARNING for o in outcomes)
        assert outcomes[0].message == SKIPPED_MESSAGE
        enrichment.lookup_contact_info.assert_not_awaited()
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_throttle_precedes_each_lookup(self, batch, enrichment, recording_sleep):
        candidates = [
            Candidate(name="Ana Silva", linkedin_url="https://linkedin.com/in/ana"),
            Candidate(name="No Url"),
            Candidate(name="Bruno Moreau", linkedin_url="https://linkedin.com/in/bruno"),
        ]

        await _collect(batch, candidates)

        assert recording_sleep.delays == [0.5, 0.5]
        assert [call.args[0] for call in enrichment.lookup_contact_info.await_args_list] == [
            "https://linkedin.com/in/ana",
            "https://linkedin.com/in/bruno",
        ]

    @pytest.mark.asyncio
    async def test_progress_counts_in_input_order(self, batch):
        candidates = [Candidate(name=f"Candidate {n}") for n in range(4)]

        outcomes = await _collect(batch, candidates)

        assert [o.processed for o in outcomes] == [1, 2, 3, 4]
        assert all(o.total == 4 for o in outcomes)
        assert [o.candidate_name for o in outcomes] == [c.name for c in candidates]

    @pytest.mark.asyncio
    async def test_found_updates_store_then_ats(self, batch, store, ats):
        candidate = Candidate(
            local_id=LOCAL_A,
            external_id="501",
            name="Ana Silva",
            linkedin_url="https://linkedin.com/in/ana",
        )

        [outcome] = await _collect(batch, [candidate])

        assert outcome.level == BatchLogLevel.SUCCESS
        assert outcome.reason == BatchItemReason.ENRICHED
        assert outcome.message == "Success: Found Contact."
        assert outcome.candidate_key == "501"
        assert outcome.sync.primary.status == StepStatus.OK
        assert outcome.sync.secondary.status == StepStatus.OK

        candidate_id, update = store.update_candidate.call_args.args
        assert candidate_id == LOCAL_A
        assert update.model_dump(exclude_unset=True) == {
            "email": "ana@mail.org",
            "phone": "+33 6 00 00 00 00",
        }
        ats.update_candidate.assert_awaited_once_with(
            "501", {"email": "ana@mail.org", "phone_number": "+33 6 00 00 00 00"}
        )

    @pytest.mark.asyncio
    async def test_transient_record_skips_primary_write(self, batch, store, ats):
        candidate = Candidate(
            local_id="generated",
            external_id="777",
            name="Eva Okafor",
            linkedin_url="https://linkedin.com/in/eva",
            is_external_only=True,
        )

        [outcome] = await _collect(batch, [candidate])

        assert outcome.reason == BatchItemReason.ENRICHED
        assert outcome.sync.primary.status == StepStatus.SKIPPED
        assert outcome.sync.secondary.status == StepStatus.OK
        store.update_candidate.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_external_id_has_no_secondary_step(self, batch, ats):
        candidate = Candidate(local_id=LOCAL_A, name="Ana Silva", linkedin_url="https://linkedin.com/in/ana")

        [outcome] = await _collect(batch, [candidate])

        assert outcome.sync.secondary is None
        ats.update_candidate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ats_failure_is_secondary_only(self, batch, ats):
        ats.update_candidate.side_effect = ExternalServiceError("ATS request failed")
        candidate = Candidate(
            local_id=LOCAL_A,
            external_id="501",
            name="Ana Silva",
            linkedin_url="https://linkedin.com/in/ana",
        )

        [outcome] = await _collect(batch, [candidate])

        assert outcome.level == BatchLogLevel.SUCCESS
        assert outcome.sync.secondary.status == StepStatus.FAILED

    @pytest.mark.asyncio
    async def test_store_failure_reports_update_failed(self, batch, store):
        store.update_candidate.side_effect = StoreError("Failed to update candidate")
        candidate = Candidate(local_id=LOCAL_A, name="Ana Silva", linkedin_url="https://linkedin.com/in/ana")

        [outcome] = await _collect(batch, [candidate])

        assert outcome.level == BatchLogLevel.ERROR
        assert outcome.reason == BatchItemReason.UPDATE_FAILED
        assert outcome.message == "Found contact but failed to save: Failed to update candidate"
        assert outcome.email == "ana@mail.org"

    @pytest.mark.asyncio
    async def test_errors_and_empty_results_do_not_stop_batch(self, batch, enrichment, store):
        enrichment.lookup_contact_info.side_effect = [
            ContactLookupResult(outcome=LookupOutcome.ERROR, error="Polling timed out before completion."),
            ContactLookupResult(outcome=LookupOutcome.NO_CONTACT_INFO),
            _found(email=None),
        ]
        candidates = [
            Candidate(local_id=LOCAL_A, name=name, linkedin_url=f"https://linkedin.com/in/{n}")
            for n, name in enumerate(["Ana", "Bruno", "Chloé"])
        ]

        outcomes = await _collect(batch, candidates)

        assert [o.reason for o in outcomes] == [
            BatchItemReason.LOOKUP_FAILED,
            BatchItemReason.NO_CONTACT_INFO,
            BatchItemReason.ENRICHED,
        ]
        assert outcomes[0].message == "Failed: Polling timed out before completion."
        assert outcomes[1].message == "No contact info found."
        assert enrichment.lookup_contact_info.await_count == 3
        _, update = store.update_candidate.call_args.args
        assert update.model_dump(exclude_unset=True) == {"phone": "+33 6 00 00 00 00"}

    @pytest.mark.asyncio
    async def test_summary_metrics_logged(self, batch):
        with patch(
            "partner_portal.services.batch_enrichment_service.performance_logger"
        ) as mock_performance_logger:
            await _collect(batch, [
                Candidate(name="No Url"),
                Candidate(name="Ana", linkedin_url="https://linkedin.com/in/ana"),
            ])

        kwargs = mock_performance_logger.log_processing_metrics.call_args.kwargs
        assert kwargs["items_processed"] == 2
        assert kwargs["success_count"] == 1
        assert kwargs["skipped_count"] == 1
        assert kwargs["error_count"] == 0

    @pytest.mark.asyncio
    async def test_empty_batch(self, batch):
        assert await _collect(batch, []) == []
