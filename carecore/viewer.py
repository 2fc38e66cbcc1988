import logging

from carecore import keys
from carecore.access import OrgAccessRepository
from carecore.decoding import normalize_status
from carecore.domain import FAMILY, VIEWER_ROLES
from carecore.errors import UnknownStatusError
from carecore.storage import KeyValueStore, Session

logger = logging.getLogger(__name__)


class ViewerSessionRepository:
    """Viewer role; the session copy wins in mock mode, the persistent one is the fallback."""

    def __init__(self, store: KeyValueStore, access: OrgAccessRepository, mock: bool = True):
        self.store = store
        self.access = access
        self.mock = mock

    def get_role(self, session: Session) -> str:
        if self.mock:
            role = normalize_status(session.store.read_text(keys.SESSION_ROLE), VIEWER_ROLES, None)
            if role:
                return role
        role = normalize_status(self.store.read_text(keys.ACTIVE_ROLE), VIEWER_ROLES, None)
        return role or FAMILY

    def set_role(self, session: Session, role: str) -> str:
        """Switching role counts as a fresh login: overrides and the seeded flag are wiped."""
        resolved = normalize_status(role, VIEWER_ROLES, None)
        if resolved is None:
            raise UnknownStatusError(f"unknown viewer role {role!r}")
        self.store.write_text(keys.ACTIVE_ROLE, resolved)
        session.store.write_text(keys.SESSION_ROLE, resolved)
        self.access.clear()
        session.store.remove(keys.SESSION_ORG_SEEDED)
        logger.info("viewer role set to %s; access overrides reset", resolved)
        return resolved

    def clear_role(self, session: Session) -> None:
        self.store.remove(keys.ACTIVE_ROLE)
        session.store.remove(keys.SESSION_ROLE)
        session.store.remove(keys.SESSION_ORG_SEEDED)
