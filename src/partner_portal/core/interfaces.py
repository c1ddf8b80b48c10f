"""Collaborator interfaces consumed by the portal workflows.

Each workflow receives its collaborators through its constructor, so tests
substitute fakes for the auth backend, the canonical store, the ATS and the
enrichment provider.
"""

from typing import Any, Dict, List, Optional, Protocol

from partner_portal.schemas.candidate import Candidate, CandidateCreate, CandidateUpdate
from partner_portal.schemas.session import UserRole, UserSession


class SessionProvider(Protocol):
    """Auth/session collaborator."""

    def get_current_session(self) -> Optional[UserSession]:
        ...

    def get_user_role(self, user_id: str) -> UserRole:
        ...


class CanonicalStore(Protocol):
    """The portal's own candidate table."""

    def list_candidates(self, user_id: Optional[str] = None) -> List[Candidate]:
        ...

    def create_candidate(
        self,
        fields: CandidateCreate,
        user_id: Optional[str],
        created_by_name: Optional[str] = None,
    ) -> Candidate:
        ...

    def update_candidate(self, candidate_id: str, fields: CandidateUpdate) -> None:
        ...

    def delete_candidates(self, candidate_ids: List[str]) -> None:
        ...


class AtsSearchPage(Protocol):
    count: int
    results: List[Dict[str, Any]]


class AtsGateway(Protocol):
    """External applicant-tracking system."""

    async def search_candidates(self, param: str, value: str) -> "AtsSearchPage":
        ...

    async def search(self, query: str) -> List[Candidate]:
        ...

    async def get_candidate_details(self, external_id: str, name: Optional[str] = None) -> Dict[str, Any]:
        ...

    async def create_candidate(self, fields: Dict[str, Any]) -> Candidate:
        ...

    async def update_candidate(self, external_id: str, fields: Dict[str, Any]) -> Candidate:
        ...

    async def delete_candidate(self, external_id: str) -> None:
        ...

    async def create_match(self, candidate_id: str, job_id: str) -> None:
        ...


class EnrichmentProvider(Protocol):
    """External contact-enrichment provider."""

    async def submit_lookup(self, linkedin_url: str) -> Optional[Dict[str, Any]]:
        ...

    async def check_status(self, job_id: str) -> Any:
        ...
