"""FastAPI dependencies for session resolution and service lookup."""

from typing import Optional

import structlog
from fastapi import Depends, Header, HTTPException, Request, status

from partner_portal.core.config import settings
from partner_portal.schemas.session import UserSession
from .session import HeaderSessionProvider

logger = structlog.get_logger(__name__)


def get_portal_services(request: Request):
    """Service container built at startup."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Services not initialized",
        )
    return services


def get_session_provider(
    x_user_id: Optional[str] = Header(None),
    x_user_email: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
) -> HeaderSessionProvider:
    """Resolve the caller's session from identity headers.

    Args:
        x_user_id: Authenticated user id
        x_user_email: User email (optional)
        x_user_name: User display name (optional)

    Returns:
        Provider holding the session, or no session when the id is absent
    """
    session = None
    if x_user_id and x_user_id.strip():
        session = UserSession(
            user_id=x_user_id.strip(),
            email=x_user_email,
            display_name=x_user_name,
        )
    return HeaderSessionProvider(session, settings.admin_user_ids)


def require_session(
    provider: HeaderSessionProvider = Depends(get_session_provider),
) -> UserSession:
    """Get the current session or fail with 401.

    Raises:
        HTTPException: If no user is signed in
    """
    session = provider.get_current_session()
    if session is None:
        logger.warning("No session provided")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return session
