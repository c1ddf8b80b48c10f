"""Client for the contact-enrichment provider REST API."""

import asyncio
from typing import Any, Dict, Optional, Tuple

import aiohttp
import structlog

from partner_portal.core.config import settings
from partner_portal.core.error_handling import ExternalServiceError

logger = structlog.get_logger(__name__)

SERVICE_NAME = "enrichment"


class EnrichmentClient:
    """Async client for person lookups by LinkedIn URL.

    Error responses are returned as data so the enrichment workflow can map
    them; an error body without a numeric ``status`` gets the HTTP status
    injected under that key.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = (base_url or settings.enrichment_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.enrichment_api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds or settings.enrichment_timeout_seconds)
        self._session = session

    def _headers(self) -> Dict[str, str]:
        return {"Api-Key": self.api_key, "Content-Type": "application/json"}

    async def _get(self, endpoint: str, params: Dict[str, str]) -> Tuple[int, Any]:
        url = f"{self.base_url}/{endpoint}"

        async def send(session: aiohttp.ClientSession) -> Tuple[int, Any]:
            async with session.get(url, params=params, headers=self._headers(), timeout=self.timeout) as response:
                text = await response.text()
                if not text:
                    return response.status, None
                try:
                    return response.status, await response.json(content_type=None)
                except ValueError:
                    return response.status, {"error": text}

        try:
            if self._session is not None:
                return await send(self._session)
            async with aiohttp.ClientSession() as session:
                return await send(session)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("Enrichment request failed", endpoint=endpoint, error=str(e))
            raise ExternalServiceError(
                f"Connection Error: {e}",
                service_name=SERVICE_NAME,
                original_error=e,
            )

    @staticmethod
    def _with_status(status: int, body: Any) -> Any:
        if status < 400:
            return body
        if not isinstance(body, dict):
            body = {"error": str(body) if body else f"HTTP {status}"}
        if not isinstance(body.get("status"), int):
            body = dict(body, status=status)
        return body

    async def submit_lookup(self, linkedin_url: str) -> Optional[Dict[str, Any]]:
        """Start a lookup that reveals personal email and phone.

        Args:
            linkedin_url: Profile URL to resolve

        Returns:
            Provider profile payload, error payload, or None for an empty body

        Raises:
            ExternalServiceError: If the provider is unreachable
        """
        status, body = await self._get(
            "lookup",
            {
                "linkedin_url": linkedin_url,
                "reveal_personal_email": "true",
                "reveal_phone": "true",
            },
        )
        logger.info("Enrichment lookup submitted", status_code=status)
        return self._with_status(status, body)

    async def check_status(self, job_id: str) -> Any:
        """Query the status of a queued lookup.

        Returns:
            A profile dict, a dict keyed by job id, or a list of profiles
        """
        status, body = await self._get("check_status", {"ids": str(job_id)})
        return self._with_status(status, body)
