"""Tests for identity resolution, sessions, activity logging and error handling."""

import pytest

from partner_portal.auth.session import HeaderSessionProvider
from partner_portal.core.error_handling import (
    ErrorCategory,
    ErrorContext,
    ExternalServiceError,
    PortalError,
    StoreError,
    UpstreamErrorKind,
    ValidationError,
    error_handler,
)
from partner_portal.core.identity import (
    find_match,
    merge_key,
    normalize_name,
    pin_key,
    pin_keys,
    transient_local_id,
)
from partner_portal.schemas.candidate import Candidate
from partner_portal.schemas.enrichment import EnrichmentJob, EnrichmentStatus
from partner_portal.schemas.session import UserRole, UserSession
from partner_portal.services.activity_log_service import ActivityLogService


class TestIdentity:

    def test_normalize_name(self):
        assert normalize_name("  ÉVA Okafor ") == "éva okafor"
        assert normalize_name("Straße") == normalize_name("STRASSE")
        assert normalize_name(None) == ""

    def test_merge_key_prefers_external_id(self):
        assert merge_key(Candidate(external_id=501, name="Ana")) == "ext:501"
        assert merge_key(Candidate(name=" Ana ")) == "name:ana"

    def test_pin_keys(self):
        both = Candidate(local_id="abc", external_id="501", name="Ana")

        assert pin_key(both) == "501"
        assert pin_keys(both) == ["501", "abc"]
        assert pin_keys(Candidate(local_id="abc", name="Ana")) == ["abc"]

    def test_find_match_id_before_name(self):
        by_name = Candidate(local_id="a", name="Ana Silva")
        by_id = Candidate(local_id="b", external_id="501", name="Someone")

        assert find_match(Candidate(external_id="501", name="Ana Silva"), [by_name, by_id]) is by_id
        assert find_match(Candidate(external_id="999", name="ana silva"), [by_name, by_id]) is by_name
        assert find_match(Candidate(name="Nobody"), [by_name, by_id]) is None

    def test_transient_id_depends_on_identity_only(self):
        first = transient_local_id(Candidate(external_id="501", name="Ana"))
        second = transient_local_id(Candidate(external_id="501", name="Renamed"))

        assert first == second
        assert first != transient_local_id(Candidate(external_id="502", name="Ana"))


class TestSchemas:

    def test_status_parsing(self):
        assert EnrichmentStatus.parse("Not Queued") == EnrichmentStatus.NOT_QUEUED
        assert EnrichmentStatus.parse("weird") == EnrichmentStatus.SUBMITTED
        assert EnrichmentStatus.parse(None) == EnrichmentStatus.SUBMITTED

    def test_job_from_payload_drops_empty_entries(self):
        job = EnrichmentJob.from_payload({
            "id": 42,
            "status": "complete",
            "emails": [{"email": "a@x.io", "type": "personal"}, {"type": "professional"}, "junk"],
            "phones": None,
        })

        assert job.id == "42"
        assert [e.address for e in job.emails] == ["a@x.io"]
        assert job.emails[0].category == "personal"
        assert job.phones == []

    def test_blank_status_defaults_to_available(self):
        assert Candidate(name="Ana", status="").status.value == "Available"


class TestSessions:

    def test_roles(self):
        provider = HeaderSessionProvider(UserSession(user_id="admin-1"), admin_user_ids=["admin-1"])

        assert provider.is_admin
        assert provider.get_user_role("user-1") == UserRole.USER

    def test_no_session_is_not_admin(self):
        assert HeaderSessionProvider(None, admin_user_ids=["admin-1"]).is_admin is False


class TestActivityLog:

    def test_partner_entry(self, session_provider):
        entry = ActivityLogService(session_provider).log_action("Pinned candidate: Ana Silva")

        assert entry["user_id"] == "user-1"
        assert entry["user_name"] == "Pat Partner"
        assert entry["user_role"] == "Partner"
        assert entry["action_description"] == "Pinned candidate: Ana Silva"

    def test_admin_entry_falls_back_to_email(self):
        provider = HeaderSessionProvider(
            UserSession(user_id="admin-1", email="admin@example.com"), admin_user_ids=["admin-1"]
        )

        entry = ActivityLogService(provider).log_action("Synchronized 2 candidates from the ATS")

        assert entry["user_name"] == "admin@example.com"
        assert entry["user_role"] == "Admin"

    def test_no_session_logs_nothing(self):
        assert ActivityLogService(HeaderSessionProvider(None)).log_action("anything") is None


class TestErrorHandling:

    def test_portal_errors_pass_through_with_context(self):
        error = StoreError("Failed to list candidates")
        context = ErrorContext(operation="list_candidates", component="candidate_service")

        handled = error_handler.handle_error(error, context)

        assert handled is error
        assert handled.context is context
        assert handled.to_dict()["category"] == "database"

    @pytest.mark.parametrize("raised,expected", [
        (ConnectionError("reset by peer"), ExternalServiceError),
        (ValueError("bad value"), ValidationError),
        (RuntimeError("sql syntax"), StoreError),
    ])
    def test_generic_errors_are_classified(self, raised, expected):
        assert isinstance(error_handler.handle_error(raised), expected)

    def test_unclassified_error_is_system(self):
        handled = error_handler.handle_error(KeyError("x"))

        assert type(handled) is PortalError
        assert handled.category == ErrorCategory.SYSTEM

    @pytest.mark.parametrize("status_code,kind", [
        (401, UpstreamErrorKind.UNAUTHORIZED),
        (403, UpstreamErrorKind.ACCESS_DENIED),
        (404, UpstreamErrorKind.NOT_FOUND),
        (429, UpstreamErrorKind.GENERIC),
        (None, UpstreamErrorKind.GENERIC),
    ])
    def test_upstream_kind_from_status(self, status_code, kind):
        assert UpstreamErrorKind.from_status(status_code) == kind
