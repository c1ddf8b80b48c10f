"""Database models for the canonical store."""

from .candidate import Candidate

__all__ = ["Candidate"]
