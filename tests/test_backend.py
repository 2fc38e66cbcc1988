import json

import pytest
import requests

from carecore.backend import BackendClient, latest_status
from carecore.domain import Task
from carecore.errors import BackendError, CareError


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._text = text if text is not None else ("" if payload is None else json.dumps(payload))
        self.content = self._text.encode()

    def json(self):
        return json.loads(self._text)


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, json=None, timeout=None, headers=None):
        self.calls.append((method, url, json))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_client(*responses):
    session = FakeSession(*responses)
    return BackendClient("http://api.test/", session=session), session


def test_list_clients_decodes_records():
    client, session = make_client(FakeResponse(payload=[
        {"_id": "c1", "name": "Alice", "dob": "1943-09-19", "orgAccess": "approved"},
        "garbage",
    ]))
    clients = client.list_clients()
    assert [c.id for c in clients] == ["c1"]
    assert session.calls == [("GET", "http://api.test/api/v1/clients", None)]


def test_non_2xx_raises_with_status():
    client, _ = make_client(FakeResponse(status_code=500))
    with pytest.raises(BackendError) as err:
        client.get_tasks()
    assert err.value.status_code == 500
    assert isinstance(err.value, CareError)


def test_missing_client_is_none():
    client, _ = make_client(FakeResponse(status_code=404))
    assert client.get_client("nobody") is None


def test_transport_failure_raises():
    client, _ = make_client(requests.ConnectionError("refused"))
    with pytest.raises(BackendError):
        client.get_budget_rows("c1")


def test_invalid_json_raises():
    client, _ = make_client(FakeResponse(text="<html>"))
    with pytest.raises(BackendError):
        client.get_transactions("c1")


def test_access_users_error_is_not_swallowed():
    client, _ = make_client(FakeResponse(status_code=403))
    with pytest.raises(BackendError):
        client.get_access_users("c1")


def test_save_tasks_posts_the_collection():
    client, session = make_client(FakeResponse(status_code=204))
    task = Task(id="1", client_id="c1", title="Walk")
    client.save_tasks([task])
    method, url, body = session.calls[0]
    assert (method, url) == ("POST", "http://api.test/api/v1/tasks")
    assert body[0]["clientId"] == "c1"


def test_add_transaction_returns_created_id():
    client, session = make_client(FakeResponse(status_code=201, payload={"id": 42}))
    assert client.add_transaction({"clientId": "c1", "amount": 5}) == "42"
    assert session.calls[0][1] == "http://api.test/api/transactions"


def test_latest_status():
    history = [
        {"status": "approved", "updatedAt": "2025-01-01T00:00:00Z"},
        {"status": "Revoked", "updatedAt": "2025-03-01T00:00:00Z"},
        {"status": "pending", "createdAt": "2025-02-01T00:00:00Z"},
    ]
    assert latest_status(history) == "revoked"
    assert latest_status([]) is None
