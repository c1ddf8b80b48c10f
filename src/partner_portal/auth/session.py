"""Session providers backing the auth collaborator interface."""

from typing import Iterable, Optional

from partner_portal.schemas.session import UserRole, UserSession


class HeaderSessionProvider:
    """Request-scoped provider for a session resolved upstream of the portal.

    The identity arrives already authenticated (from a gateway or, in
    development, from request headers); roles come from the configured admin
    list.
    """

    def __init__(self, session: Optional[UserSession], admin_user_ids: Iterable[str] = ()):
        self.session = session
        self.admin_user_ids = frozenset(admin_user_ids)

    def get_current_session(self) -> Optional[UserSession]:
        return self.session

    def get_user_role(self, user_id: str) -> UserRole:
        return UserRole.ADMIN if user_id in self.admin_user_ids else UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.session is not None and self.get_user_role(self.session.user_id) == UserRole.ADMIN
