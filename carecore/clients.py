import logging
from typing import Dict, List, Optional

from carecore import keys
from carecore.decoding import decode_access_user, decode_all, decode_client
from carecore.domain import AccessUser, ActiveClient, Client, Organisation
from carecore.seed import NAME_BY_ID, seed_section
from carecore.storage import KeyValueStore

logger = logging.getLogger(__name__)


class ClientDirectory:
    """Read-only demo clients, organisations and the users who can see each client."""

    def __init__(self):
        self._clients: List[Client] = decode_all(seed_section("clients"), decode_client)[0]
        self._orgs = [Organisation(**o) for o in seed_section("organisations")]
        self._users: Dict[str, List[AccessUser]] = {
            cid: decode_all(users, decode_access_user)[0]
            for cid, users in seed_section("usersByClient").items()
        }

    def list(self) -> List[Client]:
        return list(self._clients)

    def get(self, client_id: str) -> Optional[Client]:
        return next((c for c in self._clients if c.id == client_id), None)

    def organisations(self) -> List[Organisation]:
        return list(self._orgs)

    def users_with_access(self, client_id: str) -> List[AccessUser]:
        return list(self._users.get(client_id, []))


class ActiveClientStore:
    """The (id, name) pair of the client the viewer is working on."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def read(self) -> ActiveClient:
        client_id = self.store.read_text(keys.ACTIVE_CLIENT_ID)
        name = self.store.read_text(keys.CURRENT_CLIENT_NAME) or ""
        if not name and client_id:
            name = NAME_BY_ID.get(client_id, "")
        return ActiveClient(id=client_id, name=name)

    def write(self, client_id: str, name: Optional[str] = None) -> None:
        self.store.write_text(keys.ACTIVE_CLIENT_ID, client_id)
        if name:
            self.store.write_text(keys.CURRENT_CLIENT_NAME, name)
