import pytest

from carecore.api import CareApi, open_store
from carecore.config import Settings
from carecore.domain import Client, Task
from carecore.errors import UnknownStatusError
from carecore.storage import JsonFileBackend, Session


class FakeBackend:
    def __init__(self):
        self.calls = []

    def list_clients(self):
        self.calls.append("list_clients")
        return [Client(id="live1", name="Live", dob="1940-01-01")]

    def get_org_access_history(self, client_id, org_id):
        self.calls.append(("history", client_id, org_id))
        return []

    def request_access(self, client_id, org_id):
        self.calls.append(("request", client_id, org_id))

    def get_tasks(self):
        self.calls.append("get_tasks")
        return [Task(id="lt1", client_id="live1", title="Shopping")]

    def save_tasks(self, tasks):
        self.calls.append(("save_tasks", [t.id for t in tasks]))
        self.saved = list(tasks)


def make_api(**kwargs):
    return CareApi(Settings(budget_latency_ms=0, **kwargs))


@pytest.mark.asyncio
async def test_approval_flows_into_budget_rows():
    api = make_api()
    tx_id = await api.add_transaction("mock1", "Purchase", "2025-10-01", "Carer John", "Clothing", "Socks", 20)
    await api.set_transaction_status(tx_id, "Approved")
    rows = await api.get_budget_rows("mock1")
    assert next(r for r in rows if r.item == "Socks").spent == 56
    assert any(t.id == tx_id for t in await api.get_transactions("mock1"))


@pytest.mark.asyncio
async def test_resolve_access_seeds_first():
    api = make_api()
    login = Session()
    assert await api.resolve_access(login, "mock2") == "pending"
    api.set_org_status("mock2", "org1", "approved")
    assert await api.resolve_access(login, "mock2") == "approved"


@pytest.mark.asyncio
async def test_clients_with_access():
    api = make_api()
    annotated = await api.clients_with_access(Session())
    assert [(c.id, a) for c, a in annotated] == [
        ("mock1", "approved"), ("mock2", "pending"), ("mock-cathy", "revoked"),
    ]


@pytest.mark.asyncio
async def test_mock_reads():
    api = make_api()
    assert len(await api.get_tasks()) == 3
    assert len(await api.get_task_catalog()) == 5
    assert len(await api.get_users_with_access("mock1")) == 3
    assert (await api.get_client("mock2")).name == "Mock Bob"
    assert [r.id for r in await api.get_requests_by_client("mock2")] == ["rq3"]


@pytest.mark.asyncio
async def test_annual_budget_notifies_subscribers():
    api = make_api()
    got = []
    unsubscribe = api.subscribe_budget(got.append)
    await api.set_annual_budget("mock1", 5000, "2025")
    unsubscribe()
    await api.set_annual_budget("mock1", 6000, "2025")
    assert await api.get_annual_budget("mock1", "2025") == 6000
    assert [p["kind"] for p in got] == ["annual-total"]


@pytest.mark.asyncio
async def test_requests_round_trip():
    api = make_api()
    rq_id = await api.add_request("mock2", "Bob Smith Jr.", "Swim", "Weekly", "Fitness")
    await api.set_request_status(rq_id, "Approved")
    entries = await api.get_requests_by_client("mock2")
    assert entries[0].status == "Approved"


@pytest.mark.asyncio
async def test_live_mode_uses_backend():
    backend = FakeBackend()
    api = CareApi(Settings(mock=False), backend=backend)
    clients = await api.get_clients()
    assert [c.id for c in clients] == ["live1"]
    assert await api.resolve_access(Session(), "live1", "org9") == "approved"
    assert backend.calls == ["list_clients", ("history", "live1", "org9")]


@pytest.mark.asyncio
async def test_live_mode_local_only_operations():
    api = CareApi(Settings(mock=False), backend=FakeBackend())
    assert await api.set_transaction_status("t3", "Approved") is None
    assert await api.get_requests_by_client("mock1") == []
    api.set_org_status("live1", "org1", "revoked")
    assert await api.get_task_catalog() == []
    assert api.access.get_override("live1", "org1") is None


def test_role_and_org_selection():
    api = make_api()
    login = Session()
    assert api.get_viewer_role(login) == "family"
    api.set_viewer_role(login, "management")
    api.select_org(login, "org2")
    assert api.current_org_id() == "org2"
    assert api.access.get_override("mock1", "org2") == "approved"
    api.clear_viewer_role(login)
    assert api.get_viewer_role(login) == "family"


def test_active_client_and_task_files():
    api = make_api()
    api.write_active_client("mock1")
    assert api.read_active_client().name == "Mock Alice"
    assert api.read_task_files() == {}


def test_store_path_selects_file_backend(tmp_path):
    store = open_store(Settings(store_path=str(tmp_path / "profile.json")))
    assert isinstance(store.backend, JsonFileBackend)


@pytest.mark.asyncio
async def test_request_access_marks_pending():
    api = make_api()
    login = Session()
    assert await api.resolve_access(login, "mock-cathy") == "revoked"
    await api.request_access("mock-cathy")
    assert await api.resolve_access(login, "mock-cathy") == "pending"
    assert api.access.get_override("mock-cathy", "org1") == "pending"


@pytest.mark.asyncio
async def test_request_access_posts_to_backend():
    backend = FakeBackend()
    api = CareApi(Settings(mock=False), backend=backend)
    await api.request_access("live1", "org9")
    assert backend.calls == [("request", "live1", "org9")]
    assert api.access.get_override("live1", "org9") is None


@pytest.mark.asyncio
async def test_add_task_goes_through_the_repository():
    api = make_api()
    task = await api.add_task("mock1", "Laundry", category="Household", last_done="2025-10-01",
                              next_due="2025-10-08", status="completed")
    assert task.status == "Completed"
    assert [t.id for t in await api.get_tasks()][-1] == task.id
    with pytest.raises(UnknownStatusError):
        await api.add_task("mock1", "Ironing", status="Done")
    assert len(await api.get_tasks()) == 4


@pytest.mark.asyncio
async def test_add_task_live_appends_to_backend_tasks():
    backend = FakeBackend()
    api = CareApi(Settings(mock=False), backend=backend)
    task = await api.add_task("live1", "Laundry", last_done="2025-10-01")
    assert task.next_due == "2025-10-01"
    assert backend.calls == ["get_tasks", ("save_tasks", ["lt1", task.id])]
    with pytest.raises(UnknownStatusError):
        await api.save_tasks([Task(id="x", client_id="live1", title="Bad", status="Done")])
    assert len(backend.calls) == 2
