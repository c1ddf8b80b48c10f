"""Candidate model for the canonical store."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from partner_portal.core.base import Base


def _new_id() -> str:
    return str(uuid4())


class Candidate(Base):
    """Candidate onboarded through the portal; authoritative over ATS copies."""

    __tablename__ = "candidates"

    id = Column(String(36), primary_key=True, default=_new_id)
    external_id = Column(String(64), nullable=True, unique=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    linkedin_url = Column(String(512), nullable=True)
    role = Column(String(255), nullable=True)
    current_company = Column(String(255), nullable=True)
    location = Column(String(255), nullable=True)
    reference = Column(String(255), nullable=True)
    notice_period = Column(String(100), nullable=True)
    current_salary = Column(String(100), nullable=True)
    expected_salary = Column(String(100), nullable=True)
    owner = Column(String(255), nullable=True)
    university = Column(String(255), nullable=True)
    diploma = Column(String(255), nullable=True)
    source = Column(Text, nullable=True)
    avatar_url = Column(String(512), nullable=True)
    status = Column(String(50), default="Available", nullable=False)
    visibility = Column(Boolean, default=True, nullable=False)
    interested_count = Column(Integer, default=0, nullable=False)
    created_by = Column(String(64), nullable=True, index=True)
    created_by_name = Column(String(255), nullable=True)
    added_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Candidate(id={self.id}, name='{self.name}', external_id={self.external_id})>"
