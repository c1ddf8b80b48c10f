"""Repository pattern implementations for data access."""

from .base import BaseRepository
from .candidate import CandidateRepository
from .preferences import PinOverlay, PreferenceRepository

__all__ = [
    "BaseRepository",
    "CandidateRepository",
    "PinOverlay",
    "PreferenceRepository",
]
