"""Duplicate detection probe run against the ATS before a registration."""

from dataclasses import dataclass
from typing import List, Optional

import structlog

from partner_portal.clients.ats import map_ats_candidate
from partner_portal.core.error_handling import PortalError
from partner_portal.core.interfaces import AtsGateway
from partner_portal.schemas.duplicate import DuplicateCheckRequest, DuplicateCheckResult, MatchField

logger = structlog.get_logger(__name__)

MIN_PROBE_CHARS = 3


@dataclass
class ProbeStrategy:
    """One ATS lookup of the probe."""
    field: MatchField
    label: str
    param: str
    value: Optional[str]

    @property
    def usable(self) -> bool:
        return bool(self.value) and len(self.value) >= MIN_PROBE_CHARS


class DuplicateDetectionService:
    """Decides whether the ATS already holds the person about to be registered.

    Strategies run one at a time in precedence order (email, phone, LinkedIn
    substring, full name) and the first one returning a result wins, so a
    lower-precedence match can never override a higher one.
    """

    def __init__(self, ats: AtsGateway):
        """Initialize duplicate detection service.

        Args:
            ats: ATS gateway used for the field lookups
        """
        self.ats = ats

    @staticmethod
    def build_strategies(fields: DuplicateCheckRequest) -> List[ProbeStrategy]:
        """Build the ordered strategies for the given contact fields."""

        def clean(value: Optional[str]) -> Optional[str]:
            return value.strip() if value else None

        return [
            ProbeStrategy(MatchField.EMAIL, "E-mail", "email", clean(fields.email)),
            ProbeStrategy(MatchField.PHONE, "Phone", "phone_number", clean(fields.phone)),
            ProbeStrategy(MatchField.LINKEDIN, "LinkedIn URL", "linkedin_url__icontains", clean(fields.linkedin_url)),
            ProbeStrategy(MatchField.NAME, "Full Name", "full_name", clean(fields.full_name)),
        ]

    async def check_duplicate(self, fields: DuplicateCheckRequest) -> DuplicateCheckResult:
        """Probe the ATS for an existing candidate.

        Args:
            fields: Contact fields of the prospective candidate

        Returns:
            DuplicateCheckResult; a failed lookup counts as no result for
            that strategy only
        """
        for strategy in self.build_strategies(fields):
            if not strategy.usable:
                logger.debug("Duplicate probe strategy skipped", field=strategy.field.value)
                continue

            try:
                page = await self.ats.search_candidates(strategy.param, strategy.value)
            except PortalError as e:
                logger.warning(
                    "Duplicate probe strategy failed",
                    field=strategy.field.value,
                    error=e.message,
                )
                continue

            if page.count > 0 and page.results:
                existing = map_ats_candidate(page.results[0])
                logger.info(
                    "Duplicate candidate found",
                    matched_by=strategy.field.value,
                    external_id=existing.external_id if existing else None,
                )
                return DuplicateCheckResult(
                    is_duplicate=True,
                    matched_by=strategy.field,
                    matched_by_label=strategy.label,
                    matched_candidate=existing,
                )

        logger.info("No duplicate candidate found")
        return DuplicateCheckResult.no_match()
