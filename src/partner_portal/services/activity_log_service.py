"""Activity log for user-visible portal actions."""

from datetime import datetime
from typing import Any, Dict, Optional

import structlog

from partner_portal.core.interfaces import SessionProvider
from partner_portal.schemas.session import UserRole

logger = structlog.get_logger(__name__)
audit_logger = structlog.get_logger("audit")


class ActivityLogService:
    """Records who did what, attributed to the current session's user."""

    def __init__(self, sessions: SessionProvider):
        self.sessions = sessions

    def log_action(self, description: str) -> Optional[Dict[str, Any]]:
        """Write an activity entry for the signed-in user.

        Args:
            description: Human-readable action description

        Returns:
            The logged entry, or None when nobody is signed in
        """
        session = self.sessions.get_current_session()
        if session is None:
            return None

        role = self.sessions.get_user_role(session.user_id)
        entry = {
            "user_id": session.user_id,
            "user_name": session.display_name or session.email or "Unknown User",
            "user_role": "Admin" if role == UserRole.ADMIN else "Partner",
            "action_description": description,
            "created_at": datetime.utcnow().isoformat(),
        }
        audit_logger.info("Activity recorded", **entry)
        return entry
