"""Candidate registration, update and deletion across the ATS and the canonical store."""

from typing import Any, Dict, Optional

import structlog

from partner_portal.core.error_handling import (
    AuthenticationError,
    PortalError,
    StoreError,
)
from partner_portal.core.interfaces import AtsGateway, CanonicalStore
from partner_portal.schemas.candidate import (
    Candidate,
    CandidateCreate,
    CandidateUpdate,
    RegistrationForm,
)
from partner_portal.schemas.duplicate import DuplicateCheckRequest
from partner_portal.schemas.enrichment import StepResult, StepStatus
from partner_portal.schemas.registration import RegistrationResult
from .activity_log_service import ActivityLogService
from .duplicate_detection_service import DuplicateDetectionService

logger = structlog.get_logger(__name__)


def split_full_name(full_name: str) -> Dict[str, str]:
    parts = full_name.strip().split(" ")
    return {"first_name": parts[0], "last_name": " ".join(parts[1:])}


def form_to_ats_fields(form: RegistrationForm) -> Dict[str, Any]:
    """Registration form as ATS fields, with first/last name derived when blank."""
    fields = form.model_dump(exclude={"selected_job_id"}, exclude_none=True)
    if not form.first_name and not form.last_name:
        fields.update(split_full_name(form.full_name))
    return fields


class RegistrationService:
    """Registers partners' candidates in the ATS and the canonical store.

    Every new registration is preceded by the duplicate probe; a match blocks
    the registration until the user confirms the person is not a duplicate.
    """

    def __init__(
        self,
        ats: AtsGateway,
        store: CanonicalStore,
        duplicates: Optional[DuplicateDetectionService] = None,
        activity: Optional[ActivityLogService] = None,
    ):
        self.ats = ats
        self.store = store
        self.duplicates = duplicates or DuplicateDetectionService(ats)
        self.activity = activity

    def _log_activity(self, description: str) -> None:
        if self.activity is not None:
            self.activity.log_action(description)

    async def register(
        self,
        form: RegistrationForm,
        user_id: Optional[str],
        created_by_name: Optional[str] = None,
        confirmed_not_duplicate: bool = False,
    ) -> RegistrationResult:
        """Register a new candidate.

        Args:
            form: Registration form fields
            user_id: Registering user
            created_by_name: Display name of the registering user
            confirmed_not_duplicate: Skip the duplicate probe after the user
                reviewed a reported match

        Returns:
            RegistrationResult; ``created`` is False when a duplicate blocked it

        Raises:
            AuthenticationError: If no user is signed in
            ExternalServiceError, UpstreamError: If the ATS rejects the record
            StoreError: If the canonical insert fails
        """
        if not user_id:
            raise AuthenticationError("You must be logged in to register candidates.")

        if not confirmed_not_duplicate:
            duplicate = await self.duplicates.check_duplicate(DuplicateCheckRequest(
                email=form.email,
                full_name=form.full_name,
                linkedin_url=form.linkedin_url,
                phone=form.phone_number,
            ))
            if duplicate.is_duplicate:
                logger.info(
                    "Registration blocked by duplicate",
                    user_id=user_id,
                    matched_by=duplicate.matched_by.value,
                )
                return RegistrationResult(created=False, duplicate=duplicate)

        external = await self.ats.create_candidate(form_to_ats_fields(form))
        self._log_activity(f"Created new candidate: {form.full_name}")

        candidate = self.store.create_candidate(
            CandidateCreate(
                name=form.full_name,
                external_id=external.external_id,
                email=form.email,
                phone=form.phone_number,
                linkedin_url=form.linkedin_url,
                role=form.current_position,
                current_company=form.current_company,
                location=form.location,
                reference=form.reference,
                university=form.university,
                diploma=form.diploma,
                source=form.source,
                avatar_url=external.avatar_url,
                added_at=external.added_at,
            ),
            user_id,
            created_by_name,
        )

        job_link = None
        if form.selected_job_id and external.external_id:
            try:
                await self.ats.create_match(external.external_id, form.selected_job_id)
                job_link = StepResult(status=StepStatus.OK)
                self._log_activity(
                    f"Linked candidate ID {external.external_id} to Job ID {form.selected_job_id}"
                )
            except (PortalError, ValueError) as e:
                message = getattr(e, "message", str(e))
                logger.error(
                    "Job link failed",
                    external_id=external.external_id,
                    job_id=form.selected_job_id,
                    error=message,
                )
                job_link = StepResult(status=StepStatus.FAILED, message=message)

        logger.info(
            "Candidate registered",
            candidate_id=candidate.local_id,
            external_id=external.external_id,
            user_id=user_id,
        )
        return RegistrationResult(
            created=True,
            candidate=candidate,
            external_candidate=external,
            job_link=job_link,
        )

    async def update_registration(
        self,
        external_id: str,
        form: RegistrationForm,
        local_id: Optional[str] = None,
    ) -> Candidate:
        """Push edited form fields to the ATS, and to the canonical row if given.

        Returns:
            The ATS record after the update
        """
        updated = await self.ats.update_candidate(external_id, form_to_ats_fields(form))
        self._log_activity(f"Updated candidate: {form.full_name}")

        if local_id:
            supplied = {
                "name": form.full_name,
                "email": form.email,
                "phone": form.phone_number,
                "linkedin_url": form.linkedin_url,
                "role": form.current_position,
                "current_company": form.current_company,
                "location": form.location,
            }
            # Blank form fields leave stored values (e.g. enriched contacts) alone.
            changes = CandidateUpdate(**{key: value for key, value in supplied.items() if value is not None})
            self.store.update_candidate(local_id, changes)

        return updated

    async def delete_candidate(self, candidate: Candidate) -> None:
        """Delete a candidate from the ATS and the canonical store.

        The ATS delete is best effort; the canonical delete must succeed.

        Raises:
            StoreError: If the canonical delete fails
        """
        if candidate.external_id:
            try:
                await self.ats.delete_candidate(candidate.external_id)
            except PortalError as e:
                logger.error("ATS deletion failed", external_id=candidate.external_id, error=e.message)

        if candidate.local_id and not candidate.is_external_only:
            try:
                self.store.delete_candidates([candidate.local_id])
            except PortalError as e:
                raise StoreError(
                    f"Database synchronization failed: {e.message}",
                    original_error=e,
                )

        self._log_activity(f"Successfully deleted/archived candidate: {candidate.name}")
        logger.info(
            "Candidate deleted",
            candidate_id=candidate.local_id,
            external_id=candidate.external_id,
        )
