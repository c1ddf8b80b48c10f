"""Candidate repository for database operations."""

from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.orm import Session

from partner_portal.models.candidate import Candidate
from .base import BaseRepository

logger = structlog.get_logger(__name__)


class CandidateRepository(BaseRepository[Candidate]):
    """Repository for Candidate model operations."""

    def __init__(self):
        super().__init__(Candidate)

    def get_by_external_id(self, db: Session, external_id: str) -> Optional[Candidate]:
        """Get candidate by ATS id.

        Args:
            db: Database session
            external_id: ATS-assigned id

        Returns:
            Candidate if found, None otherwise
        """
        return db.query(Candidate).filter(Candidate.external_id == external_id).first()

    def list_all(self, db: Session, created_by: Optional[str] = None) -> List[Candidate]:
        """List candidates, newest first.

        Args:
            db: Database session
            created_by: Restrict to candidates registered by this user (optional)

        Returns:
            List of candidates
        """
        query = db.query(Candidate)
        if created_by:
            query = query.filter(Candidate.created_by == created_by)
        return query.order_by(Candidate.added_at.desc(), Candidate.id).all()

    def upsert_by_external_id(self, db: Session, external_id: str, fields: Dict[str, Any]) -> Candidate:
        """Insert a candidate or update the row holding the same ATS id.

        Args:
            db: Database session
            external_id: ATS-assigned id used as the conflict key
            fields: Column values to write

        Returns:
            The inserted or updated candidate
        """
        existing = self.get_by_external_id(db, external_id)
        if existing is None:
            return self.create(db, external_id=external_id, **fields)
        return self.update(db, existing.id, **fields)
