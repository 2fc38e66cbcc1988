"""HTTP client for the live backend.

Every non-2xx answer and every transport failure raises ``BackendError``;
nothing here degrades to an empty result.
"""
import logging
from typing import Any, List, Optional, Sequence

import requests

from carecore.decoding import (
    decode_access_user, decode_all, decode_budget_row, decode_client, decode_task, decode_transaction,
    normalize_status,
)
from carecore.domain import ACCESS_APPROVED, ACCESS_STATUSES, AccessUser, BudgetRow, Client, Task, Transaction
from carecore.errors import BackendError

logger = logging.getLogger(__name__)


class BackendClient:

    def __init__(self, base_url: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, what: str, json: Any = None,
                 allow_404: bool = False) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, json=json, timeout=self.timeout,
                headers={"Cache-Control": "no-store"},
            )
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise BackendError(f"Failed to {what} ({exc})", url=url) from exc
        if allow_404 and response.status_code == 404:
            return None
        if not 200 <= response.status_code < 300:
            logger.warning("%s %s -> %s", method, url, response.status_code)
            raise BackendError(f"Failed to {what} ({response.status_code})",
                               status_code=response.status_code, url=url)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError(f"Failed to {what} (invalid JSON)", status_code=response.status_code,
                               url=url) from exc

    @staticmethod
    def _list(data: Any, decode) -> list:
        return decode_all(data, decode)[0] if isinstance(data, list) else []

    def list_clients(self) -> List[Client]:
        return self._list(self._request("GET", "/api/v1/clients", "fetch clients"), decode_client)

    def get_client(self, client_id: str) -> Optional[Client]:
        data = self._request("GET", f"/api/v1/clients/{client_id}", "fetch client", allow_404=True)
        if data is None:
            return None
        return decode_client(data, 0).get_or_else(None)

    def get_tasks(self) -> List[Task]:
        return self._list(self._request("GET", "/api/v1/tasks", "fetch tasks"), decode_task)

    def save_tasks(self, tasks: Sequence[Task]) -> None:
        self._request("POST", "/api/v1/tasks", "save tasks", json=[t.to_dict() for t in tasks])

    def get_budget_rows(self, client_id: str) -> List[BudgetRow]:
        data = self._request("GET", f"/api/v1/clients/{client_id}/budget", "fetch budget rows")
        return self._list(data, decode_budget_row)

    def get_transactions(self, client_id: str) -> List[Transaction]:
        data = self._request("GET", f"/api/v1/clients/{client_id}/transactions", "fetch transactions")
        return self._list(data, decode_transaction)

    def add_transaction(self, payload: dict) -> str:
        created = self._request("POST", "/api/transactions", "save transaction", json=payload)
        return str(created.get("id", "")) if isinstance(created, dict) else ""

    def get_access_users(self, client_id: str) -> List[AccessUser]:
        data = self._request("GET", f"/api/v1/clients/{client_id}/access", "fetch access entries")
        return self._list(data, decode_access_user)

    def get_org_access_history(self, client_id: str, org_id: str) -> List[dict]:
        data = self._request("GET", f"/api/v1/clients/{client_id}/organisations/{org_id}",
                             "fetch access entries")
        return [e for e in data if isinstance(e, dict)] if isinstance(data, list) else []

    def request_access(self, client_id: str, org_id: str) -> None:
        self._request("POST", f"/api/v1/clients/{client_id}/organisations/{org_id}",
                      "request access", json={"action": "request"})


def latest_status(history: Sequence[dict]) -> Optional[str]:
    """Status of the most recently updated entry; None for an empty history."""
    if not history:
        return None
    latest = max(history, key=lambda e: str(e.get("updatedAt") or e.get("createdAt") or ""))
    return normalize_status(latest.get("status"), ACCESS_STATUSES, ACCESS_APPROVED) or ACCESS_APPROVED
