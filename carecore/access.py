"""Per-(client, organisation) access overrides and their once-per-login seeding.

Persistent layout::

    currentOrgId       -> "org1"
    orgStatusByClient  -> {clientId: {orgId: "approved" | "pending" | "revoked"}}

The session scope holds ``orgSeededThisSession`` once defaults were written
for the current login.
"""
import logging
from typing import Dict, Optional

from carecore import keys
from carecore.decoding import normalize_status
from carecore.domain import ACCESS_APPROVED, ACCESS_STATUSES, Client
from carecore.errors import UnknownStatusError
from carecore.seed import DEFAULT_ORG_ID, seed_section
from carecore.storage import KeyValueStore, Session

logger = logging.getLogger(__name__)

StatusMap = Dict[str, Dict[str, str]]


class OrgAccessRepository:

    def __init__(self, store: KeyValueStore):
        self.store = store

    def current_org_id(self) -> str:
        return self.store.read_text(keys.CURRENT_ORG_ID) or DEFAULT_ORG_ID

    def set_current_org_id(self, org_id: str) -> None:
        self.store.write_text(keys.CURRENT_ORG_ID, org_id)

    def read_map(self) -> StatusMap:
        raw = self.store.read(keys.ORG_STATUS_BY_CLIENT, {})
        if not isinstance(raw, dict):
            return {}
        return {cid: dict(orgs) for cid, orgs in raw.items() if isinstance(orgs, dict)}

    def _write_map(self, m: StatusMap) -> None:
        self.store.write(keys.ORG_STATUS_BY_CLIENT, m)

    def get_override(self, client_id: str, org_id: str) -> Optional[str]:
        status = self.read_map().get(client_id, {}).get(org_id)
        return normalize_status(status, ACCESS_STATUSES, None) if status else None

    def set_override(self, client_id: str, org_id: str, status: str) -> None:
        resolved = normalize_status(status, ACCESS_STATUSES, None)
        if resolved is None:
            raise UnknownStatusError(f"unknown access status {status!r}")
        m = self.read_map()
        m.setdefault(client_id, {})[org_id] = resolved
        self._write_map(m)

    def clear(self) -> None:
        self.store.remove(keys.ORG_STATUS_BY_CLIENT)

    def resolve(self, client_id: str, org_id: str, client: Optional[Client] = None) -> str:
        """Override for the pair, else the client's own default, else approved."""
        override = self.get_override(client_id, org_id)
        if override:
            return override
        if client is not None and client.org_access:
            return client.org_access
        return ACCESS_APPROVED

    def seed_defaults(self, session: Session) -> bool:
        """Write the demo defaults for the current org, once per login session.

        Pairs that already carry an override are left alone. Returns True if
        this call did the seeding.
        """
        if session.store.read_text(keys.SESSION_ORG_SEEDED) == "1":
            return False
        org_id = self.current_org_id()
        m = self.read_map()
        for client_id, status in seed_section("orgStatusDefaults").items():
            m.setdefault(client_id, {}).setdefault(org_id, status)
        self._write_map(m)
        session.store.write_text(keys.SESSION_ORG_SEEDED, "1")
        logger.debug("seeded org access defaults for %s in session %s", org_id, session.id)
        return True
