"""Session resolution for the portal API."""

from .session import HeaderSessionProvider
from .dependencies import get_portal_services, get_session_provider, require_session

__all__ = [
    "HeaderSessionProvider",
    "get_portal_services",
    "get_session_provider",
    "require_session",
]
