"""Canonical candidate store backed by SQLAlchemy."""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from partner_portal.core.database import DatabaseManager, db_manager
from partner_portal.core.error_handling import StoreError, ValidationError
from partner_portal.models.candidate import Candidate as CandidateModel
from partner_portal.repositories.candidate import CandidateRepository
from partner_portal.repositories.preferences import PreferenceRepository
from partner_portal.schemas.candidate import (
    Candidate,
    CandidateCreate,
    CandidateStatus,
    CandidateUpdate,
)

logger = structlog.get_logger(__name__)

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)

# Columns copied from ATS records on upsert; portal-owned fields are left alone.
_EXTERNAL_FIELDS = ("name", "role", "current_company", "location", "linkedin_url", "avatar_url")


def _parse_timestamp(value: Optional[str]) -> datetime:
    if value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)
        except ValueError:
            logger.warning("Unparseable added_at replaced with now", value=value)
    return datetime.utcnow()


def to_candidate(row: CandidateModel) -> Candidate:
    """Map a stored row to the display schema."""
    return Candidate(
        local_id=row.id,
        external_id=row.external_id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        linkedin_url=row.linkedin_url,
        role=row.role,
        current_company=row.current_company,
        location=row.location,
        reference=row.reference,
        notice_period=row.notice_period,
        current_salary=row.current_salary,
        expected_salary=row.expected_salary,
        owner=row.owner,
        university=row.university,
        diploma=row.diploma,
        status=row.status,
        visibility=row.visibility,
        created_by=row.created_by,
        created_by_name=row.created_by_name,
        source=row.source,
        avatar_url=row.avatar_url,
        added_at=row.added_at.isoformat() if row.added_at else None,
        interested_count=row.interested_count or 0,
    )


class CandidateService:
    """Service over the portal's own candidate table.

    Every method runs in its own session scope, so each call is one unit of
    work that is committed on success and rolled back on error.
    """

    def __init__(
        self,
        database: Optional[DatabaseManager] = None,
        preferences: Optional[PreferenceRepository] = None,
    ):
        self.database = database or db_manager
        self.preferences = preferences
        self.repository = CandidateRepository()

    def list_candidates(self, user_id: Optional[str] = None) -> List[Candidate]:
        """List stored candidates, newest first.

        Args:
            user_id: When given, only candidates registered by this user

        Returns:
            List of candidates
        """
        try:
            with self.database.get_session() as db:
                rows = self.repository.list_all(db, created_by=user_id)
                return [to_candidate(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error("Failed to list candidates", user_id=user_id, error=str(e))
            raise StoreError("Failed to list candidates", original_error=e)

    def get_candidate(self, candidate_id: str) -> Optional[Candidate]:
        if not _UUID_RE.match(candidate_id or ""):
            return None
        with self.database.get_session() as db:
            row = self.repository.get_by_id(db, candidate_id)
            return to_candidate(row) if row else None

    def create_candidate(
        self,
        fields: CandidateCreate,
        user_id: Optional[str],
        created_by_name: Optional[str] = None,
    ) -> Candidate:
        """Insert a candidate; the store assigns its id.

        Args:
            fields: Candidate fields
            user_id: Registering user, recorded as owner of the row
            created_by_name: Display name of the registering user (optional)

        Returns:
            The stored candidate

        Raises:
            StoreError: If the insert fails
        """
        values = fields.model_dump()
        values["status"] = fields.status.value
        values["added_at"] = _parse_timestamp(values.pop("added_at", None))

        try:
            with self.database.get_session() as db:
                row = self.repository.create(
                    db,
                    created_by=user_id,
                    created_by_name=created_by_name,
                    interested_count=0,
                    **values,
                )
                candidate = to_candidate(row)
        except SQLAlchemyError as e:
            logger.error("Candidate creation failed", name=fields.name, error=str(e))
            raise StoreError("Failed to create candidate", original_error=e)

        logger.info(
            "Candidate created",
            candidate_id=candidate.local_id,
            external_id=candidate.external_id,
            created_by=user_id,
        )
        return candidate

    def update_candidate(self, candidate_id: str, fields: CandidateUpdate) -> None:
        """Write only the fields explicitly set on ``fields``.

        Raises:
            ValidationError: If ``candidate_id`` is missing
            StoreError: If the row does not exist or the write fails
        """
        if not candidate_id:
            raise ValidationError("Candidate id is required for updates", field="candidate_id")

        values = fields.model_dump(exclude_unset=True)
        if "status" in values and values["status"] is not None:
            values["status"] = CandidateStatus(values["status"]).value
        if not values:
            return

        try:
            with self.database.get_session() as db:
                row = self.repository.update(db, candidate_id, **values)
        except SQLAlchemyError as e:
            logger.error("Candidate update failed", candidate_id=candidate_id, error=str(e))
            raise StoreError("Failed to update candidate", original_error=e)

        if row is None:
            raise StoreError(f"Candidate {candidate_id} not found")

    def delete_candidates(self, candidate_ids: List[str]) -> None:
        """Delete stored candidates; ids that are not store ids are ignored.

        Raises:
            StoreError: If the delete fails
        """
        valid_ids = [cid for cid in candidate_ids if cid and _UUID_RE.match(cid)]
        if len(valid_ids) != len(candidate_ids):
            logger.debug("Ignoring non-store ids on delete", ignored=len(candidate_ids) - len(valid_ids))
        if not valid_ids:
            return

        try:
            with self.database.get_session() as db:
                self.repository.delete_many(db, valid_ids)
        except SQLAlchemyError as e:
            logger.error("Candidate deletion failed", ids=valid_ids, error=str(e))
            raise StoreError("Failed to delete candidates", original_error=e)

    def upsert_external(self, records: List[Candidate]) -> int:
        """Store ATS records, updating rows that already carry the same ATS id.

        Records without an ATS id are skipped since they have no conflict key.

        Returns:
            Number of rows written
        """
        written = 0
        try:
            with self.database.get_session() as db:
                for record in records:
                    if not record.external_id:
                        logger.warning("Skipping ATS record without id", name=record.name)
                        continue
                    values: Dict[str, Any] = {
                        field: getattr(record, field) for field in _EXTERNAL_FIELDS
                    }
                    self.repository.upsert_by_external_id(db, record.external_id, values)
                    written += 1
        except SQLAlchemyError as e:
            logger.error("ATS upsert failed", error=str(e))
            raise StoreError("Failed to upsert ATS candidates", original_error=e)

        logger.info("ATS candidates upserted", count=written)
        return written

    def update_status(self, candidate_id: str, status: CandidateStatus, user_id: Optional[str] = None) -> None:
        """Change pipeline status and record the user's interest flag.

        The interest flag is written first and is set iff the new status is
        Hired, even when the row itself is missing.
        """
        status = CandidateStatus(status)
        if self.preferences is not None and user_id:
            self.preferences.set_interest(user_id, candidate_id, status == CandidateStatus.HIRED)

        if self.get_candidate(candidate_id) is None:
            logger.warning("Status update for unknown candidate", candidate_id=candidate_id)
            return

        self.update_candidate(candidate_id, CandidateUpdate(status=status))
        logger.info("Candidate status updated", candidate_id=candidate_id, status=status.value)

    def toggle_visibility(self, candidate_id: str) -> Optional[bool]:
        """Flip visibility of a stored candidate.

        Returns:
            New visibility, or None if the candidate does not exist
        """
        try:
            with self.database.get_session() as db:
                row = self.repository.get_by_id(db, candidate_id)
                if row is None:
                    return None
                new_visibility = not row.visibility
                self.repository.update(db, candidate_id, visibility=new_visibility)
        except SQLAlchemyError as e:
            logger.error("Visibility toggle failed", candidate_id=candidate_id, error=str(e))
            raise StoreError("Failed to toggle visibility", original_error=e)

        logger.info("Candidate visibility toggled", candidate_id=candidate_id, visibility=new_visibility)
        return new_visibility
