import pytest

from carecore import keys
from carecore.access import OrgAccessRepository
from carecore.clients import ActiveClientStore, ClientDirectory
from carecore.domain import Client
from carecore.errors import UnknownStatusError
from carecore.storage import KeyValueStore, Session
from carecore.viewer import ViewerSessionRepository


def make_client(org_access=None):
    return Client(id="c9", name="Test", dob="1950-01-01", org_access=org_access)


def test_resolve_cascade():
    access = OrgAccessRepository(KeyValueStore())
    assert access.resolve("c9", "org1") == "approved"
    assert access.resolve("c9", "org1", make_client("pending")) == "pending"
    access.set_override("c9", "org1", "revoked")
    assert access.resolve("c9", "org1", make_client("pending")) == "revoked"
    assert access.resolve("c9", "org2", make_client("pending")) == "pending"


def test_second_override_wins():
    access = OrgAccessRepository(KeyValueStore())
    access.set_override("mock2", "org1", "PENDING")
    access.set_override("mock2", "org1", "approved")
    assert access.get_override("mock2", "org1") == "approved"
    assert access.read_map() == {"mock2": {"org1": "approved"}}


def test_unknown_access_status_is_rejected():
    access = OrgAccessRepository(KeyValueStore())
    with pytest.raises(UnknownStatusError):
        access.set_override("mock1", "org1", "blocked")


def test_defaults_are_seeded_once_per_session():
    access = OrgAccessRepository(KeyValueStore())
    login = Session()
    assert access.seed_defaults(login)
    assert access.read_map() == {
        "mock1": {"org1": "approved"},
        "mock2": {"org1": "pending"},
        "mock-cathy": {"org1": "revoked"},
    }
    access.set_override("mock2", "org1", "approved")
    assert access.seed_defaults(login) is False
    assert access.get_override("mock2", "org1") == "approved"


def test_seeding_keeps_existing_overrides():
    access = OrgAccessRepository(KeyValueStore())
    access.set_override("mock1", "org1", "revoked")
    access.seed_defaults(Session())
    assert access.get_override("mock1", "org1") == "revoked"
    assert access.get_override("mock2", "org1") == "pending"


def test_seeding_uses_current_org():
    access = OrgAccessRepository(KeyValueStore())
    assert access.current_org_id() == "org1"
    access.set_current_org_id("org3")
    access.seed_defaults(Session())
    assert access.get_override("mock-cathy", "org3") == "revoked"
    assert access.get_override("mock-cathy", "org1") is None


def test_role_defaults_to_family():
    store = KeyValueStore()
    viewer = ViewerSessionRepository(store, OrgAccessRepository(store))
    assert viewer.get_role(Session()) == "family"


def test_role_switch_resets_overrides_and_reseeds():
    store = KeyValueStore()
    access = OrgAccessRepository(store)
    viewer = ViewerSessionRepository(store, access)
    login = Session()
    access.seed_defaults(login)
    access.set_override("mock2", "org1", "approved")

    assert viewer.set_role(login, "Carer") == "carer"

    assert store.read(keys.ORG_STATUS_BY_CLIENT) is None
    assert access.seed_defaults(login)
    assert access.get_override("mock2", "org1") == "pending"


def test_session_role_wins_in_mock_mode():
    store = KeyValueStore()
    login = Session()
    store.write_text(keys.ACTIVE_ROLE, "carer")
    login.store.write_text(keys.SESSION_ROLE, "management")
    access = OrgAccessRepository(store)
    assert ViewerSessionRepository(store, access).get_role(login) == "management"
    assert ViewerSessionRepository(store, access, mock=False).get_role(login) == "carer"
    assert ViewerSessionRepository(store, access).get_role(Session()) == "carer"


def test_unknown_role_is_rejected_and_clear_role():
    store = KeyValueStore()
    viewer = ViewerSessionRepository(store, OrgAccessRepository(store))
    login = Session()
    with pytest.raises(UnknownStatusError):
        viewer.set_role(login, "admin")
    viewer.set_role(login, "management")
    viewer.clear_role(login)
    assert viewer.get_role(login) == "family"


def test_client_directory():
    directory = ClientDirectory()
    assert [c.id for c in directory.list()] == ["mock1", "mock2", "mock-cathy"]
    assert directory.get("mock2").org_access == "pending"
    assert directory.get("nobody") is None
    assert [u.role for u in directory.users_with_access("mock1")] == ["family", "carer", "management"]
    assert directory.users_with_access("nobody") == []


def test_active_client_name_fallback():
    active = ActiveClientStore(KeyValueStore())
    assert active.read().id is None
    active.write("mock2")
    assert active.read().name == "Mock Bob"
    active.write("c9", "Test Person")
    assert (active.read().id, active.read().name) == ("c9", "Test Person")
