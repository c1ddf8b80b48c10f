"""Candidate API endpoints."""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from partner_portal.auth.dependencies import (
    get_portal_services,
    get_session_provider,
    require_session,
)
from partner_portal.auth.session import HeaderSessionProvider
from partner_portal.core.identity import pin_key
from partner_portal.core.logging import performance_logger
from partner_portal.core.startup import PortalServices
from partner_portal.schemas.candidate import (
    Candidate,
    CandidateFilter,
    CandidateStatus,
    RegistrationForm,
)
from partner_portal.schemas.duplicate import DuplicateCheckRequest, DuplicateCheckResult
from partner_portal.schemas.enrichment import ContactLookupResult, EnrichmentRequest
from partner_portal.schemas.registration import RegistrationResult
from partner_portal.schemas.session import UserSession

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/candidates", tags=["candidates"])


class PinResponse(BaseModel):
    candidate_key: Optional[str]
    is_pinned: bool


class StatusUpdate(BaseModel):
    status: CandidateStatus


@router.get("", response_model=List[Candidate])
async def list_candidates(
    query: Optional[str] = Query(None, description="Free-text ATS search"),
    active_filter: CandidateFilter = Query(CandidateFilter.ALL, alias="filter"),
    services: PortalServices = Depends(get_portal_services),
    provider: HeaderSessionProvider = Depends(get_session_provider),
):
    """List candidates for the current user.

    Without a query (or with one shorter than the search minimum) the list is
    the canonical store plus the user's pinned snapshots; with a query the
    ATS results are merged in, stored records taking precedence.
    """
    session = provider.get_current_session()
    user_id = session.user_id if session else None

    with performance_logger.log_operation_time("list_candidates", user_id=user_id):
        candidates = await services.reconciliation.search(
            query, active_filter, user_id, provider.is_admin
        )

    if query and len(query.strip()) >= services.settings.min_search_chars:
        services.activity(provider).log_action(f'Searched candidates: "{query.strip()}"')
    return candidates


@router.post("/pin", response_model=PinResponse)
async def toggle_pin(
    candidate: Candidate,
    services: PortalServices = Depends(get_portal_services),
    provider: HeaderSessionProvider = Depends(get_session_provider),
):
    """Pin or unpin a candidate for the current user."""
    session = provider.get_current_session()
    pinned = services.pins.toggle_pin(candidate, session.user_id if session else None)
    services.activity(provider).log_action(f"{'Pinned' if pinned else 'Unpinned'} candidate: {candidate.name}")
    return PinResponse(candidate_key=pin_key(candidate), is_pinned=pinned)


@router.post("/duplicate-check", response_model=DuplicateCheckResult)
async def check_duplicate(
    fields: DuplicateCheckRequest,
    services: PortalServices = Depends(get_portal_services),
    session: UserSession = Depends(require_session),
):
    """Probe the ATS for an existing candidate with the same contact fields."""
    return await services.duplicates.check_duplicate(fields)


@router.post("/register", response_model=RegistrationResult, status_code=status.HTTP_201_CREATED)
async def register_candidate(
    form: RegistrationForm,
    confirmed_not_duplicate: bool = Query(False),
    services: PortalServices = Depends(get_portal_services),
    provider: HeaderSessionProvider = Depends(get_session_provider),
    session: UserSession = Depends(require_session),
):
    """Register a candidate in the ATS and the canonical store.

    Responds 409 with the matched record when the duplicate probe finds the
    person already in the ATS; resubmit with ``confirmed_not_duplicate`` to
    register anyway.
    """
    result = await services.registration(provider).register(
        form,
        session.user_id,
        created_by_name=session.display_name,
        confirmed_not_duplicate=confirmed_not_duplicate,
    )
    if not result.created:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=result.model_dump(mode="json"))
    return result


@router.put("/{external_id}", response_model=Candidate)
async def update_candidate(
    external_id: str,
    form: RegistrationForm,
    local_id: Optional[str] = Query(None),
    services: PortalServices = Depends(get_portal_services),
    provider: HeaderSessionProvider = Depends(get_session_provider),
    session: UserSession = Depends(require_session),
):
    """Update a registered candidate in the ATS (and canonical row if given)."""
    return await services.registration(provider).update_registration(external_id, form, local_id=local_id)


@router.post("/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_candidate(
    candidate: Candidate,
    services: PortalServices = Depends(get_portal_services),
    provider: HeaderSessionProvider = Depends(get_session_provider),
    session: UserSession = Depends(require_session),
):
    """Delete a candidate from the ATS and the canonical store."""
    await services.registration(provider).delete_candidate(candidate)


@router.post("/{candidate_id}/status", status_code=status.HTTP_204_NO_CONTENT)
async def update_status(
    candidate_id: str,
    update: StatusUpdate,
    services: PortalServices = Depends(get_portal_services),
    session: UserSession = Depends(require_session),
):
    """Change a stored candidate's pipeline status."""
    services.store.update_status(candidate_id, update.status, session.user_id)


@router.post("/{candidate_id}/visibility")
async def toggle_visibility(
    candidate_id: str,
    services: PortalServices = Depends(get_portal_services),
    session: UserSession = Depends(require_session),
) -> Dict[str, Any]:
    """Flip a stored candidate's visibility."""
    visibility = services.store.toggle_visibility(candidate_id)
    if visibility is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Candidate not found"})
    return {"candidate_id": candidate_id, "visibility": visibility}


@router.post("/enrich", response_model=ContactLookupResult)
async def enrich_candidate(
    request: EnrichmentRequest,
    services: PortalServices = Depends(get_portal_services),
    session: UserSession = Depends(require_session),
):
    """Look up contact info for one LinkedIn profile."""
    return await services.enrichment.lookup_contact_info(request.linkedin_url)


@router.post("/enrich/batch")
async def enrich_batch(
    candidates: List[Candidate] = Body(...),
    services: PortalServices = Depends(get_portal_services),
    session: UserSession = Depends(require_session),
):
    """Enrich candidates one by one, streaming one NDJSON outcome per candidate."""
    logger.info("Batch enrichment requested", user_id=session.user_id, total=len(candidates))

    async def outcomes():
        async for outcome in services.batch.run_batch(candidates):
            yield outcome.model_dump_json() + "\n"

    return StreamingResponse(outcomes(), media_type="application/x-ndjson")


@router.get("/jobs")
async def list_jobs(
    services: PortalServices = Depends(get_portal_services),
    session: UserSession = Depends(require_session),
) -> List[Dict[str, Any]]:
    """Open ATS jobs a new candidate can be linked to."""
    return await services.ats.get_jobs()


@router.post("/sync")
async def sync_from_ats(
    services: PortalServices = Depends(get_portal_services),
    provider: HeaderSessionProvider = Depends(get_session_provider),
    session: UserSession = Depends(require_session),
) -> Dict[str, Any]:
    """Copy every ATS candidate into the canonical store (admins only)."""
    if not provider.is_admin:
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": "Admin role required"})

    with performance_logger.log_operation_time("ats_sync", user_id=session.user_id):
        records = await services.ats.fetch_all_candidates()
        written = services.store.upsert_external(records)

    services.activity(provider).log_action(f"Synchronized {written} candidates from the ATS")
    return {"fetched": len(records), "written": written}
