"""Contact enrichment workflow: submit a lookup, poll it, extract contact data."""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

from partner_portal.core.error_handling import (
    ErrorContext,
    ExternalServiceError,
    LookupFailedError,
    LookupIncompleteError,
    PollingTimeoutError,
    PortalError,
    UpstreamError,
    UpstreamErrorKind,
    ValidationError,
    error_handler,
)
from partner_portal.core.interfaces import EnrichmentProvider
from partner_portal.core.logging import error_logger
from partner_portal.schemas.enrichment import (
    IN_PROGRESS_STATUSES,
    SUCCESS_STATUSES,
    ContactLookupResult,
    EnrichmentJob,
    EnrichmentStatus,
    LookupOutcome,
)

logger = structlog.get_logger(__name__)

MAX_POLL_ATTEMPTS = 10
POLL_INTERVAL_SECONDS = 3.0

NO_CONTACT_INFO_MESSAGE = "Profile processed, but no public contact info found."

_UPSTREAM_MESSAGES = {
    UpstreamErrorKind.UNAUTHORIZED: "Unauthorized (401). Invalid enrichment API key.",
    UpstreamErrorKind.ACCESS_DENIED: "Access Denied (403). Verify enrichment credits or API key.",
    UpstreamErrorKind.NOT_FOUND: "Profile not found in the enrichment provider database.",
}

Sleep = Callable[[float], Awaitable[Any]]


def extract_contact_data(job: EnrichmentJob) -> ContactLookupResult:
    """Pick the best email and phone from a resolved lookup.

    Email preference is personal, then professional, then the first listed;
    the phone is always the first listed.

    Args:
        job: Lookup in a successful terminal state

    Returns:
        ``found`` result, or ``no_contact_info`` if both lists are empty
    """
    email = None
    if job.emails:
        by_category = {}
        for entry in job.emails:
            by_category.setdefault((entry.category or "").lower(), entry)
        best = by_category.get("personal") or by_category.get("professional") or job.emails[0]
        email = best.address

    phone = job.phones[0].number if job.phones else None

    if not email and not phone:
        return ContactLookupResult(outcome=LookupOutcome.NO_CONTACT_INFO, message=NO_CONTACT_INFO_MESSAGE)

    return ContactLookupResult(outcome=LookupOutcome.FOUND, email=email, phone=phone)


def error_kind(error: PortalError) -> str:
    """Short machine-readable kind of a lookup error."""
    if isinstance(error, UpstreamError):
        return error.kind.value
    if isinstance(error, PollingTimeoutError):
        return "timeout"
    if isinstance(error, LookupFailedError):
        return "failed"
    if isinstance(error, LookupIncompleteError):
        return "incomplete"
    if isinstance(error, ValidationError):
        return "validation"
    if isinstance(error, ExternalServiceError):
        return "transport"
    return error.category.value


class ContactEnrichmentService:
    """Resolve a LinkedIn profile URL to an email and phone number."""

    def __init__(self, provider: EnrichmentProvider, sleep: Optional[Sleep] = None):
        """Initialize the workflow.

        Args:
            provider: Enrichment provider client
            sleep: Awaitable delay function (defaults to ``asyncio.sleep``)
        """
        self.provider = provider
        self.sleep = sleep or asyncio.sleep

    @staticmethod
    def _check_upstream_error(payload: Dict[str, Any]) -> None:
        status = payload.get("status")
        status_code = status if isinstance(status, int) else None
        failed = payload.get("error") or payload.get("detail") or (status_code is not None and status_code >= 400)
        if not failed:
            return

        kind = UpstreamErrorKind.from_status(status_code)
        detail = payload.get("error") or payload.get("detail") or payload.get("message") or str(payload)
        message = _UPSTREAM_MESSAGES.get(kind) or f"API Error [{status_code or 'Unknown'}]: {detail}"
        logger.error("Enrichment provider returned an error", status_code=status_code, detail=detail)
        raise UpstreamError(message, kind=kind, status_code=status_code, service_name="enrichment")

    @staticmethod
    def _select_profile(data: Any, job_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """Find the job's profile in a status response (list, keyed dict, or bare profile)."""
        if isinstance(data, list):
            for entry in data:
                if isinstance(entry, dict) and str(entry.get("id")) == str(job_id):
                    return entry
            return None
        if isinstance(data, dict):
            keyed = data.get(str(job_id))
            if isinstance(keyed, dict):
                return keyed
            return data
        return None

    async def _poll(self, job: EnrichmentJob) -> EnrichmentJob:
        for attempt in range(1, MAX_POLL_ATTEMPTS + 1):
            await self.sleep(POLL_INTERVAL_SECONDS)

            try:
                data = await self.provider.check_status(job.id)
            except ExternalServiceError as e:
                logger.warning("Enrichment poll attempt failed", job_id=job.id, attempt=attempt, error=e.message)
                continue

            profile = self._select_profile(data, job.id)
            if profile is None:
                continue

            polled = EnrichmentJob.from_payload(profile)
            if polled.id is None:
                polled.id = job.id
            logger.debug("Enrichment poll", job_id=job.id, attempt=attempt, status=polled.status.value)

            if polled.is_terminal:
                return polled

        logger.warning("Enrichment polling timed out", job_id=job.id, attempts=MAX_POLL_ATTEMPTS)
        raise PollingTimeoutError(attempts=MAX_POLL_ATTEMPTS)

    async def lookup(self, linkedin_url: str) -> EnrichmentJob:
        """Submit a lookup and wait for it to resolve.

        Args:
            linkedin_url: Profile URL to resolve

        Returns:
            EnrichmentJob in a successful terminal state, or carrying data

        Raises:
            ValidationError: If the URL is empty
            ExternalServiceError: On transport failure or an empty response
            UpstreamError: If the provider answers with an error
            PollingTimeoutError: If polling never reaches a terminal status
            LookupFailedError: If the provider gave up on the lookup
            LookupIncompleteError: If the lookup stopped without any data
        """
        linkedin_url = (linkedin_url or "").strip()
        if not linkedin_url:
            error_logger.log_validation_error("linkedin_url", linkedin_url, "LinkedIn URL is required.")
            raise ValidationError("LinkedIn URL is required.", field="linkedin_url", value=linkedin_url)

        payload = await self.provider.submit_lookup(linkedin_url)
        if not payload:
            raise ExternalServiceError(
                "No data returned from lookup service (Empty Response).",
                service_name="enrichment",
            )
        if not isinstance(payload, dict):
            raise UpstreamError(f"API Error [Unknown]: {payload}", service_name="enrichment")

        self._check_upstream_error(payload)

        job = EnrichmentJob.from_payload(payload)
        logger.info("Enrichment lookup accepted", job_id=job.id, status=job.status.value)

        if job.status in IN_PROGRESS_STATUSES:
            job = await self._poll(job)

        if job.status == EnrichmentStatus.FAILED:
            raise LookupFailedError()

        if job.status not in SUCCESS_STATUSES and not job.has_contact_data:
            raise LookupIncompleteError(job.status.value)

        return job

    async def lookup_contact_info(self, linkedin_url: str) -> ContactLookupResult:
        """Run :meth:`lookup` and extract contact data, reporting errors as data.

        Args:
            linkedin_url: Profile URL to resolve

        Returns:
            ContactLookupResult; never raises for workflow errors
        """
        try:
            job = await self.lookup(linkedin_url)
        except PortalError as e:
            logger.info("Contact lookup unsuccessful", linkedin_url=linkedin_url, error=e.message)
            return ContactLookupResult(outcome=LookupOutcome.ERROR, error=e.message, error_kind=error_kind(e))
        except Exception as e:
            portal_error = error_handler.handle_error(
                e, ErrorContext(operation="lookup_contact_info", component="enrichment_service")
            )
            return ContactLookupResult(
                outcome=LookupOutcome.ERROR,
                error=portal_error.message,
                error_kind=portal_error.category.value,
            )

        result = extract_contact_data(job)
        logger.info(
            "Contact lookup completed",
            outcome=result.outcome.value,
            has_email=bool(result.email),
            has_phone=bool(result.phone),
        )
        return result
