"""Client for the applicant-tracking system REST API."""

import asyncio
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import quote

import aiohttp
import structlog

from partner_portal.core.config import settings
from partner_portal.core.error_handling import (
    ExternalServiceError,
    UpstreamError,
    UpstreamErrorKind,
)
from partner_portal.core.identity import normalize_name
from partner_portal.schemas.candidate import Candidate, CandidateStatus

logger = structlog.get_logger(__name__)

SERVICE_NAME = "ats"

_JOB_ID_RE = re.compile(r"/jobs/(\d+)")
_WORD_RE = re.compile(r"\w\S*")


@dataclass
class AtsSearchPage:
    """One page of an ATS candidate query."""
    count: int = 0
    results: List[Dict[str, Any]] = field(default_factory=list)
    next: Optional[str] = None


@dataclass
class SearchStrategy:
    param: str
    value: str
    description: str


def title_case(text: str) -> str:
    """Capitalize the first letter of each word and lowercase the rest."""
    return _WORD_RE.sub(lambda m: m.group(0)[:1].upper() + m.group(0)[1:].lower(), text)


def _avatar_url(name: str) -> str:
    return f"https://ui-avatars.com/api/?name={quote(name or 'User')}&background=random"


def _linkedin_from_raw(raw: Dict[str, Any]) -> Optional[str]:
    linkedin = raw.get("linkedin_url") or (raw.get("social_media_links") or {}).get("linkedin")
    if not linkedin and isinstance(raw.get("social_media"), list):
        for entry in raw["social_media"]:
            if str(entry.get("social_media", "")).lower() == "linkedin":
                return entry.get("social_media_url")
    return linkedin


def map_ats_candidate(raw: Optional[Dict[str, Any]]) -> Optional[Candidate]:
    """Map a raw ATS candidate record to a partial Candidate.

    Args:
        raw: Candidate record as returned by the ATS

    Returns:
        Candidate carrying the ATS id, or None for an empty record
    """
    if not raw:
        return None

    name = raw.get("full_name") or raw.get("name") or "Unknown Candidate"
    return Candidate(
        external_id=raw.get("id"),
        name=name,
        role=raw.get("current_position") or raw.get("position_name"),
        location=raw.get("address") or raw.get("city"),
        current_company=raw.get("current_company") or None,
        linkedin_url=_linkedin_from_raw(raw) or None,
        email=raw.get("email") or None,
        phone=raw.get("phone_number") or None,
        avatar_url=raw.get("picture") or _avatar_url(name),
        added_at=raw.get("created_at") or datetime.utcnow().isoformat(),
        status=CandidateStatus.AVAILABLE,
        visibility=True,
    )


def education_note(fields: Dict[str, Any]) -> str:
    if not (fields.get("university") or fields.get("diploma")):
        return ""
    return (
        "\n\nEDUCATION DETAILS:\n"
        f"University: {fields.get('university') or 'N/A'}\n"
        f"Diploma: {fields.get('diploma') or 'N/A'}"
    )


_FORM_TO_ATS = {
    "full_name": "full_name",
    "first_name": "first_name",
    "last_name": "last_name",
    "email": "email",
    "phone_number": "phone_number",
    "address": "address",
    "current_position": "current_position",
    "current_company": "current_company",
    "source": "source_details",
}


def build_candidate_payload(fields: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Translate registration form fields to the ATS candidate payload.

    With ``partial`` only the form keys present in ``fields`` are emitted.
    """
    return {
        ats_key: fields.get(form_key)
        for form_key, ats_key in _FORM_TO_ATS.items()
        if not partial or form_key in fields
    }


class AtsClient:
    """Async ATS client.

    All calls go through :meth:`_request`, which returns the status code and
    the decoded body and raises ``ExternalServiceError`` only for transport
    failures. Error-range statuses are mapped by each caller.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        result_limit: Optional[int] = None,
        min_query_chars: Optional[int] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize the client.

        Args:
            base_url: API base URL (defaults to settings)
            api_token: API token (defaults to settings)
            timeout_seconds: Per-request timeout (defaults to settings)
            result_limit: Maximum free-text search results returned
            min_query_chars: Minimum free-text query length
            session: Shared aiohttp session (optional)
        """
        self.base_url = (base_url or settings.ats_base_url).rstrip("/")
        self.api_token = api_token if api_token is not None else settings.ats_api_token
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds or settings.ats_timeout_seconds)
        self.result_limit = result_limit or settings.ats_search_result_limit
        self.min_query_chars = min_query_chars or settings.min_search_chars
        self._session = session

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Token {self.api_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
    ) -> Tuple[int, Any]:
        """Send one request and decode the body.

        Args:
            method: HTTP method
            path: Path relative to the base URL, or an absolute URL
            params: Query parameters
            payload: JSON body
            timeout: Override of the client timeout

        Returns:
            Tuple of status code and decoded body (JSON, text, or None)

        Raises:
            ExternalServiceError: If the ATS is unreachable
        """
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        logger.debug("ATS request", method=method, path=path, params=params)

        async def send(session: aiohttp.ClientSession) -> Tuple[int, Any]:
            async with session.request(
                method,
                url,
                params=params,
                json=payload,
                headers=self._headers(),
                timeout=timeout or self.timeout,
            ) as response:
                text = await response.text()
                if not text:
                    return response.status, None
                try:
                    return response.status, await response.json(content_type=None)
                except ValueError:
                    return response.status, text

        try:
            if self._session is not None:
                return await send(self._session)
            async with aiohttp.ClientSession() as session:
                return await send(session)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("ATS request failed", method=method, path=path, error=str(e))
            raise ExternalServiceError(
                f"ATS request failed: {method} {path}",
                service_name=SERVICE_NAME,
                original_error=e,
            )

    @staticmethod
    def _raise_for_status(status: int, body: Any, action: str) -> None:
        if status < 400:
            return
        kind = UpstreamErrorKind.from_status(status)
        raise UpstreamError(
            f"{action} failed ({status}): {body}",
            kind=kind,
            status_code=status,
            service_name=SERVICE_NAME,
        )

    async def search_candidates(self, param: str, value: str) -> AtsSearchPage:
        """Query candidates filtered on one field.

        Args:
            param: ATS filter parameter (``email``, ``phone_number``, ...)
            value: Filter value

        Returns:
            AtsSearchPage with the total count and the first page

        Raises:
            ExternalServiceError: On transport failure
            UpstreamError: On an error-range status
        """
        status, body = await self._request("GET", "/candidates/", params={param: value})
        self._raise_for_status(status, body, "Candidate query")
        body = body if isinstance(body, dict) else {}
        return AtsSearchPage(
            count=body.get("count") or 0,
            results=body.get("results") or [],
            next=body.get("next"),
        )

    def _search_strategies(self, query: str) -> List[SearchStrategy]:
        lowered = query.lower()
        if "http" in lowered or "www." in lowered:
            url = query.strip()
            return [
                SearchStrategy("linkedin_url__icontains", url, "LinkedIn URL"),
                SearchStrategy("social_media_url__icontains", url, "Social Media"),
            ]
        if "@" in query:
            return [SearchStrategy("email", query.strip(), "Email")]
        return [
            SearchStrategy("full_name", title_case(query), "Name Exact"),
            SearchStrategy("search", query, "Broad Search"),
        ]

    async def _probe(self, strategy: SearchStrategy) -> Optional[AtsSearchPage]:
        try:
            return await self.search_candidates(strategy.param, strategy.value)
        except (ExternalServiceError, UpstreamError) as e:
            logger.warning("ATS search strategy failed", strategy=strategy.description, error=e.message)
            return None

    async def search(self, query: str) -> List[Candidate]:
        """Free-text candidate search.

        The strategies for the query's shape run concurrently; the first one
        in declaration order that returned results wins.

        Args:
            query: URL, email or name fragment

        Returns:
            Up to ``result_limit`` partial Candidates (empty for short queries)
        """
        if not query or len(query.strip()) < self.min_query_chars:
            return []

        strategies = self._search_strategies(query)
        pages = await asyncio.gather(*(self._probe(strategy) for strategy in strategies))

        for strategy, page in zip(strategies, pages):
            if page and page.count > 0 and page.results:
                logger.info("ATS search matched", strategy=strategy.description, count=page.count)
                mapped = [map_ats_candidate(raw) for raw in page.results[: self.result_limit]]
                return [candidate for candidate in mapped if candidate is not None]

        return []

    async def _get_linkedin_url(self, external_id: str) -> Optional[str]:
        try:
            status, body = await self._request(
                "GET",
                f"/candidates/{external_id}/social-media/",
                timeout=aiohttp.ClientTimeout(total=3),
            )
        except ExternalServiceError:
            return None
        if status >= 400:
            return None
        entries = body.get("results", []) if isinstance(body, dict) else body if isinstance(body, list) else []
        for entry in entries:
            if str(entry.get("social_media", "")).lower() == "linkedin":
                return entry.get("social_media_url")
        return None

    async def get_candidate_details(self, external_id: str, name: Optional[str] = None) -> Dict[str, Any]:
        """Fetch a full ATS record, with its LinkedIn link attached.

        When the id is unknown to the ATS and a name is given, the record is
        looked up by exact (normalized) name instead.

        Raises:
            UpstreamError: If no record is found
        """
        target_id = external_id
        status, body = await self._request("GET", f"/candidates/{target_id}/")

        if status == 404 and name:
            wanted = normalize_name(name)
            for candidate in await self.search(name):
                if normalize_name(candidate.name) == wanted and candidate.external_id:
                    target_id = candidate.external_id
                    logger.info("ATS record resolved by name", requested_id=external_id, resolved_id=target_id)
                    status, body = await self._request("GET", f"/candidates/{target_id}/")
                    break

        self._raise_for_status(status, body, "Candidate details")
        details = dict(body or {})
        linkedin_url = await self._get_linkedin_url(details.get("id", target_id))
        if linkedin_url:
            details["linkedin_url"] = linkedin_url
        return details

    async def upsert_social_media(self, external_id: str, kind: str, url: str) -> None:
        """Create or update one social-media link of an ATS candidate. Best effort."""
        if not url:
            return
        path = f"/candidates/{external_id}/social-media/"
        try:
            status, body = await self._request("GET", path)
            existing_id = None
            if status < 400:
                entries = body.get("results", []) if isinstance(body, dict) else body or []
                for entry in entries:
                    if str(entry.get("social_media", "")).lower() == kind.lower():
                        existing_id = entry.get("id")
                        break

            if existing_id:
                await self._request("PATCH", f"{path}{existing_id}/", payload={"social_media_url": url})
            else:
                await self._request("POST", path, payload={"social_media": kind, "social_media_url": url})
        except ExternalServiceError as e:
            logger.error("Social media link not saved", external_id=external_id, kind=kind, error=e.message)

    async def create_candidate(self, fields: Dict[str, Any]) -> Candidate:
        """Create a candidate in the ATS from registration form fields.

        Raises:
            ExternalServiceError: On transport failure
            UpstreamError: If the ATS rejects the record
        """
        payload = build_candidate_payload(fields)
        payload["description"] = f"Candidate registered via Partner Portal.{education_note(fields)}"

        status, body = await self._request("POST", "/candidates/", payload=payload)
        self._raise_for_status(status, body, "Candidate creation")

        created = dict(body or {})
        if not created.get("id"):
            logger.error("ATS candidate creation returned no record", status=status)
            raise UpstreamError(
                "Candidate creation returned no record",
                status_code=status,
                service_name=SERVICE_NAME,
            )

        if fields.get("linkedin_url"):
            await self.upsert_social_media(created.get("id"), "linkedin", fields["linkedin_url"])
            created["linkedin_url"] = fields["linkedin_url"]

        logger.info("ATS candidate created", external_id=created.get("id"), name=fields.get("full_name"))
        return map_ats_candidate(created)

    async def update_candidate(self, external_id: str, fields: Dict[str, Any]) -> Candidate:
        """Partially update an ATS candidate.

        Only keys present in ``fields`` are sent.
        """
        payload = build_candidate_payload(fields, partial=True)
        note = education_note(fields)
        if note:
            payload["description"] = f"Updated via Partner Portal.{note}"

        status, body = await self._request("PATCH", f"/candidates/{external_id}/", payload=payload)
        self._raise_for_status(status, body, "Candidate update")

        updated = dict(body or {"id": external_id, "full_name": fields.get("full_name")})
        if fields.get("linkedin_url"):
            await self.upsert_social_media(external_id, "linkedin", fields["linkedin_url"])
            updated["linkedin_url"] = fields["linkedin_url"]

        logger.info("ATS candidate updated", external_id=external_id, fields=sorted(payload))
        return map_ats_candidate(updated)

    async def delete_candidate(self, external_id: str) -> None:
        """Delete an ATS candidate; an unknown id counts as deleted."""
        status, body = await self._request("DELETE", f"/candidates/{external_id}/")
        if status == 404:
            logger.warning("ATS candidate already absent", external_id=external_id)
            return
        self._raise_for_status(status, body, "Candidate deletion")
        logger.info("ATS candidate deleted", external_id=external_id)

    async def get_jobs(self) -> List[Dict[str, Any]]:
        """List open jobs for the registration form; failures yield an empty list."""
        try:
            status, body = await self._request(
                "GET", "/jobs/", params={"page_size": 100, "ordering": "position_name"}
            )
        except ExternalServiceError:
            return []
        if status >= 400 or not isinstance(body, dict):
            logger.warning("ATS job listing unavailable", status=status)
            return []

        return [
            {
                "id": job.get("id"),
                "position_name": job.get("position_name") or "Untitled Position",
                "organization_name": job.get("organization_name"),
                "external_id": job.get("external_id"),
                "status": job.get("status"),
                "headcount": job.get("headcount"),
                "address": job.get("address"),
            }
            for job in body.get("results") or []
        ]

    async def create_match(self, candidate_id: str, job_id: str) -> None:
        """Link a candidate to a job.

        Raises:
            UpstreamError: If the ATS rejects the link
        """
        payload = {"candidate": int(candidate_id), "job": int(job_id)}
        status, body = await self._request("POST", "/matches/", payload=payload)
        self._raise_for_status(status, body, "Job link")
        logger.info("Candidate linked to job", candidate_id=candidate_id, job_id=job_id)

    async def fetch_all_candidates(
        self,
        on_progress: Optional[Callable[[int], None]] = None,
    ) -> List[Candidate]:
        """Walk every page of the ATS candidate list.

        Args:
            on_progress: Called with the running total after each page

        Returns:
            Every ATS candidate as a partial Candidate
        """
        candidates: List[Candidate] = []
        next_url: Optional[str] = "/candidates/"
        while next_url:
            status, body = await self._request("GET", next_url)
            self._raise_for_status(status, body, "Candidate listing")
            for raw in body.get("results") or []:
                mapped = map_ats_candidate(raw)
                if mapped is not None:
                    candidates.append(mapped)
            if on_progress:
                on_progress(len(candidates))
            next_url = body.get("next")
        return candidates

    @staticmethod
    def extract_job_id_from_url(url: str) -> Optional[str]:
        """Extract the numeric job id from an ATS job URL."""
        match = _JOB_ID_RE.search(url or "")
        return match.group(1) if match else None
