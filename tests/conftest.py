"""Pytest configuration for partner portal tests."""

import os
import pytest
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

# Configure Hypothesis before importing test modules
from tests.property_based.config import PropertyTestConfig
PropertyTestConfig.configure_hypothesis()

from partner_portal.clients.ats import AtsSearchPage, map_ats_candidate
from partner_portal.core.database import DatabaseManager
from partner_portal.core.error_handling import ExternalServiceError
from partner_portal.core.kv_store import InMemoryKeyValueStore
from partner_portal.repositories.preferences import PreferenceRepository
from partner_portal.schemas.candidate import Candidate
from partner_portal.schemas.session import UserSession
from partner_portal.auth.session import HeaderSessionProvider
from partner_portal.services.candidate_service import CandidateService


class FakeAts:
    """In-memory ATS gateway.

    ``records`` are raw ATS dicts; ``search_candidates`` matches a record when
    the filter value equals (or, for ``__icontains`` params, is contained in)
    the record field named by the param.
    """

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None):
        self.records: List[Dict[str, Any]] = list(records or [])
        self.search_results: Optional[List[Candidate]] = None
        self.failing_params: set = set()
        self.fail_search = False
        self.fail_create_match = False
        self.calls: List[tuple] = []
        self.updated: Dict[str, Dict[str, Any]] = {}
        self.deleted: List[str] = []
        self.matches: List[tuple] = []
        self._next_id = 1000

    async def search_candidates(self, param: str, value: str) -> AtsSearchPage:
        self.calls.append(("search_candidates", param, value))
        if param in self.failing_params:
            raise ExternalServiceError("ATS unavailable", service_name="ats")

        field_name = param.replace("__icontains", "")
        contains = param.endswith("__icontains")
        results = []
        for raw in self.records:
            stored = str(raw.get(field_name) or "")
            if not stored:
                continue
            if (contains and value.lower() in stored.lower()) or stored == value:
                results.append(raw)
        return AtsSearchPage(count=len(results), results=results)

    async def search(self, query: str) -> List[Candidate]:
        self.calls.append(("search", query))
        if self.fail_search:
            raise ExternalServiceError("ATS unavailable", service_name="ats")
        if self.search_results is not None:
            return list(self.search_results)
        lowered = query.lower()
        return [
            map_ats_candidate(raw)
            for raw in self.records
            if lowered in str(raw.get("full_name", "")).lower()
        ]

    async def get_candidate_details(self, external_id: str, name: Optional[str] = None) -> Dict[str, Any]:
        for raw in self.records:
            if str(raw.get("id")) == str(external_id):
                return dict(raw)
        return {}

    async def create_candidate(self, fields: Dict[str, Any]) -> Candidate:
        self._next_id += 1
        raw = {
            "id": self._next_id,
            "full_name": fields.get("full_name"),
            "email": fields.get("email"),
            "phone_number": fields.get("phone_number"),
            "linkedin_url": fields.get("linkedin_url"),
            "created_at": "2024-05-01T10:00:00Z",
        }
        self.records.append(raw)
        self.calls.append(("create_candidate", fields))
        return map_ats_candidate(raw)

    async def update_candidate(self, external_id: str, fields: Dict[str, Any]) -> Candidate:
        self.updated[external_id] = dict(fields)
        self.calls.append(("update_candidate", external_id, fields))
        return map_ats_candidate({"id": external_id, "full_name": fields.get("full_name") or "Updated"})

    async def delete_candidate(self, external_id: str) -> None:
        self.deleted.append(external_id)

    async def create_match(self, candidate_id: str, job_id: str) -> None:
        if self.fail_create_match:
            raise ExternalServiceError("Job link failed", service_name="ats")
        self.matches.append((candidate_id, job_id))

    async def get_jobs(self) -> List[Dict[str, Any]]:
        return [{"id": 7, "position_name": "Backend Engineer"}]

    async def fetch_all_candidates(self, on_progress=None) -> List[Candidate]:
        return [map_ats_candidate(raw) for raw in self.records]


class FakeEnrichmentProvider:
    """Enrichment provider replaying canned responses.

    ``submit_responses`` maps a LinkedIn URL to the submit payload (an
    exception instance is raised instead); ``status_responses`` is consumed
    one entry per poll.
    """

    def __init__(self, submit_responses=None, status_responses=None):
        self.submit_responses: Dict[str, Any] = dict(submit_responses or {})
        self.status_responses: List[Any] = list(status_responses or [])
        self.submitted: List[str] = []
        self.status_calls = 0

    async def submit_lookup(self, linkedin_url: str):
        self.submitted.append(linkedin_url)
        response = self.submit_responses.get(linkedin_url)
        if isinstance(response, Exception):
            raise response
        return response

    async def check_status(self, job_id: str):
        self.status_calls += 1
        if not self.status_responses:
            return {"id": job_id, "status": "searching"}
        response = self.status_responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class RecordingSleep:
    """Awaitable stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def kv_store():
    """Provide an in-memory key-value store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def preferences(kv_store):
    """Provide a preference repository over the in-memory store."""
    return PreferenceRepository(kv_store, prefix="test")


@pytest.fixture
def fake_ats():
    return FakeAts()


@pytest.fixture
def fake_provider():
    return FakeEnrichmentProvider()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def database(tmp_path):
    """Provide an initialized SQLite canonical store in a temporary file."""
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'portal.db'}")
    manager.initialize()
    manager.create_tables()
    yield manager
    manager.close()


@pytest.fixture
def candidate_service(database, preferences):
    """Provide the SQLAlchemy-backed canonical store."""
    return CandidateService(database, preferences)


@pytest.fixture
def user_session():
    return UserSession(user_id="user-1", email="partner@example.com", display_name="Pat Partner")


@pytest.fixture
def session_provider(user_session):
    return HeaderSessionProvider(user_session, admin_user_ids=["admin-1"])


@pytest.fixture
def mock_redis():
    """Provide a mock Redis client for testing."""
    mock_redis = MagicMock()
    mock_redis.get = MagicMock(return_value=None)
    mock_redis.set = MagicMock(return_value=True)
    mock_redis.delete = MagicMock(return_value=1)
    mock_redis.ping = MagicMock(return_value=True)
    return mock_redis


# Pytest markers for organizing tests
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "property_test: mark test as a property-based test"
    )
    config.addinivalue_line(
        "markers", "database: mark test as requiring database access"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on test location."""
    for item in items:
        if "property_based" in str(item.fspath):
            item.add_marker(pytest.mark.property_test)
        elif "test_api" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Automatically setup test environment for all tests."""
    os.environ["TESTING"] = "1"
    yield


@pytest.fixture
def property_test_config():
    """Provide property test configuration."""
    return PropertyTestConfig


@pytest.fixture
def hypothesis_seed():
    """Provide deterministic seed for property tests."""
    from tests.property_based.config import get_test_seed
    return get_test_seed()
