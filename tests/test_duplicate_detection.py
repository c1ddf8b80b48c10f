"""Tests for the pre-registration duplicate probe."""

import pytest
from unittest.mock import AsyncMock

from partner_portal.clients.ats import AtsSearchPage
from partner_portal.core.error_handling import UpstreamError
from partner_portal.schemas.duplicate import DuplicateCheckRequest, MatchField
from partner_portal.services.duplicate_detection_service import (
    DuplicateDetectionService,
    ProbeStrategy,
)

from tests.conftest import FakeAts


@pytest.fixture
def ats_records():
    return [
        {
            "id": 501,
            "full_name": "Ana Silva",
            "email": "ana@example.com",
            "phone_number": "+33 6 12 34 56 78",
            "linkedin_url": "https://www.linkedin.com/in/ana-silva",
        },
        {
            "id": 502,
            "full_name": "Bruno Moreau",
            "email": "bruno@example.com",
        },
    ]


@pytest.fixture
def detector(ats_records):
    ats = FakeAts(ats_records)
    return DuplicateDetectionService(ats), ats


class TestStrategies:

    def test_strategy_order_and_params(self):
        strategies = DuplicateDetectionService.build_strategies(DuplicateCheckRequest(
            email="a@b.co", phone="12345", linkedin_url="linkedin.com/in/x", full_name="Ana Silva",
        ))

        assert [s.field for s in strategies] == [
            MatchField.EMAIL, MatchField.PHONE, MatchField.LINKEDIN, MatchField.NAME,
        ]
        assert [s.param for s in strategies] == [
            "email", "phone_number", "linkedin_url__icontains", "full_name",
        ]

    @pytest.mark.parametrize("value,usable", [
        (None, False),
        ("", False),
        ("ab", False),
        ("abc", True),
    ])
    def test_usable_requires_three_characters(self, value, usable):
        assert ProbeStrategy(MatchField.NAME, "Full Name", "full_name", value).usable is usable

    def test_values_are_trimmed(self):
        strategies = DuplicateDetectionService.build_strategies(DuplicateCheckRequest(full_name="  ab  "))

        assert strategies[3].value == "ab"
        assert not strategies[3].usable


class TestCheckDuplicate:

    @pytest.mark.asyncio
    async def test_email_match(self, detector):
        service, _ = detector

        result = await service.check_duplicate(DuplicateCheckRequest(email="ana@example.com"))

        assert result.is_duplicate
        assert result.matched_by == MatchField.EMAIL
        assert result.matched_by_label == "E-mail"
        assert result.matched_candidate.external_id == "501"
        assert result.matched_candidate.name == "Ana Silva"

    @pytest.mark.asyncio
    async def test_higher_precedence_match_wins(self, detector):
        service, ats = detector

        result = await service.check_duplicate(DuplicateCheckRequest(
            email="bruno@example.com",
            full_name="Ana Silva",
        ))

        assert result.matched_by == MatchField.EMAIL
        assert result.matched_candidate.external_id == "502"
        assert [call[1] for call in ats.calls] == ["email"]

    @pytest.mark.asyncio
    async def test_linkedin_substring_match(self, detector):
        service, _ = detector

        result = await service.check_duplicate(DuplicateCheckRequest(
            email="nobody@example.com",
            linkedin_url="linkedin.com/in/ana-silva",
        ))

        assert result.matched_by == MatchField.LINKEDIN
        assert result.matched_by_label == "LinkedIn URL"

    @pytest.mark.asyncio
    async def test_name_match_is_last_resort(self, detector):
        service, ats = detector

        result = await service.check_duplicate(DuplicateCheckRequest(
            email="nobody@example.com",
            phone="0000000",
            linkedin_url="linkedin.com/in/someone-else",
            full_name="Bruno Moreau",
        ))

        assert result.matched_by == MatchField.NAME
        assert [call[1] for call in ats.calls] == [
            "email", "phone_number", "linkedin_url__icontains", "full_name",
        ]

    @pytest.mark.asyncio
    async def test_short_values_are_skipped(self, detector):
        service, ats = detector

        result = await service.check_duplicate(DuplicateCheckRequest(
            email="a@",
            phone="12",
            full_name="Al",
        ))

        assert not result.is_duplicate
        assert result.matched_by == MatchField.NONE
        assert ats.calls == []

    @pytest.mark.asyncio
    async def test_failed_strategy_falls_through(self, detector):
        service, ats = detector
        ats.failing_params.add("email")

        result = await service.check_duplicate(DuplicateCheckRequest(
            email="ana@example.com",
            full_name="Ana Silva",
        ))

        assert result.matched_by == MatchField.NAME
        assert result.matched_candidate.external_id == "501"

    @pytest.mark.asyncio
    async def test_no_match(self, detector):
        service, _ = detector

        result = await service.check_duplicate(DuplicateCheckRequest(full_name="Grace Tanaka"))

        assert result.is_duplicate is False
        assert result.matched_candidate is None

    @pytest.mark.asyncio
    async def test_count_without_results_is_no_match(self):
        ats = AsyncMock()
        ats.search_candidates = AsyncMock(return_value=AtsSearchPage(count=3, results=[]))

        result = await DuplicateDetectionService(ats).check_duplicate(
            DuplicateCheckRequest(email="ana@example.com")
        )

        assert not result.is_duplicate

    @pytest.mark.asyncio
    async def test_upstream_errors_do_not_propagate(self):
        ats = AsyncMock()
        ats.search_candidates = AsyncMock(side_effect=UpstreamError("Candidate query failed (500)"))

        result = await DuplicateDetectionService(ats).check_duplicate(DuplicateCheckRequest(
            email="ana@example.com",
            phone="+33 6 12 34 56 78",
            linkedin_url="linkedin.com/in/ana",
            full_name="Ana Silva",
        ))

        assert not result.is_duplicate
        assert ats.search_candidates.await_count == 4
