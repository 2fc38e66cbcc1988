"""The functions collaborators call. Same coroutine signatures in mock and live mode."""
import asyncio
import logging
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from carecore.access import OrgAccessRepository
from carecore.backend import BackendClient, latest_status
from carecore.budget import AnnualBudgetRepository, BudgetRepository
from carecore.clients import ActiveClientStore, ClientDirectory
from carecore.config import Settings
from carecore.domain import (
    ACCESS_APPROVED, ACCESS_PENDING, PENDING, AccessUser, ActiveClient, BudgetRow, Client, Organisation,
    RequestLogEntry, Task, TaskCatalogItem, Transaction, UploadedFile,
)
from carecore.events import BUDGET_CHANGED, EventBus
from carecore.ids import new_id
from carecore.request_log import RequestLogRepository
from carecore.storage import JsonFileBackend, KeyValueStore, MemoryBackend, Session
from carecore.tasks import TaskCatalogRepository, TaskFilesRepository, TaskRepository, task_status
from carecore.transactions import TransactionRepository
from carecore.viewer import ViewerSessionRepository

logger = logging.getLogger(__name__)


def open_store(settings: Settings) -> KeyValueStore:
    backend = JsonFileBackend(settings.store_path) if settings.store_path else MemoryBackend()
    return KeyValueStore(backend)


class CareApi:

    def __init__(self, settings: Optional[Settings] = None, store: Optional[KeyValueStore] = None,
                 bus: Optional[EventBus] = None, backend: Optional[BackendClient] = None):
        self.settings = settings or Settings()
        self.mock = self.settings.mock
        self.store = store if store is not None else open_store(self.settings)
        self.bus = bus or EventBus()
        if backend is None and not self.mock:
            backend = BackendClient(self.settings.api_base_url, timeout=self.settings.http_timeout)
        self.backend = backend

        self.directory = ClientDirectory()
        self.active_client = ActiveClientStore(self.store)
        self.budget = BudgetRepository(self.store)
        self.annual_budget = AnnualBudgetRepository(self.store, self.bus)
        self.transactions = TransactionRepository(self.store, self.budget, self.bus)
        self.tasks = TaskRepository(self.store)
        self.catalog = TaskCatalogRepository(self.store)
        self.task_files = TaskFilesRepository(self.store)
        self.requests = RequestLogRepository(self.store)
        self.access = OrgAccessRepository(self.store)
        self.viewer = ViewerSessionRepository(self.store, self.access, mock=self.mock)

    @classmethod
    def from_env(cls) -> "CareApi":
        return cls(Settings.from_env())

    async def _live(self, fn, *args, **kwargs):
        return await asyncio.to_thread(fn, *args, **kwargs)

    async def _demo_latency(self) -> None:
        if self.settings.budget_latency_ms > 0:
            await asyncio.sleep(self.settings.budget_latency_ms / 1000)

    # clients

    async def get_clients(self) -> List[Client]:
        if self.mock:
            return self.directory.list()
        return await self._live(self.backend.list_clients)

    async def get_client(self, client_id: str) -> Optional[Client]:
        if self.mock:
            return self.directory.get(client_id)
        return await self._live(self.backend.get_client, client_id)

    def organisations(self) -> List[Organisation]:
        return self.directory.organisations()

    def read_active_client(self) -> ActiveClient:
        return self.active_client.read()

    def write_active_client(self, client_id: str, name: Optional[str] = None) -> None:
        self.active_client.write(client_id, name)

    # tasks

    async def get_tasks(self) -> List[Task]:
        if self.mock:
            return self.tasks.all()
        return await self._live(self.backend.get_tasks)

    async def save_tasks(self, tasks: Sequence[Task]) -> None:
        if self.mock:
            self.tasks.save(tasks)
            return
        checked = [replace(t, status=task_status(t.status)) for t in tasks]
        await self._live(self.backend.save_tasks, checked)

    async def add_task(self, client_id: str, title: str, category: str = "", frequency: str = "",
                       last_done: str = "", next_due: str = "", status: str = PENDING) -> Task:
        if self.mock:
            return self.tasks.add(client_id, title, category=category, frequency=frequency,
                                  last_done=last_done, next_due=next_due, status=status)
        task = Task(
            id=new_id(), client_id=client_id, title=title, category=category, frequency=frequency,
            last_done=last_done, next_due=next_due or last_done, status=task_status(status),
        )
        # the backend replaces the whole collection
        current = await self._live(self.backend.get_tasks)
        await self._live(self.backend.save_tasks, current + [task])
        return task

    async def get_task_catalog(self) -> List[TaskCatalogItem]:
        if not self.mock:
            return []
        return self.catalog.all()

    def read_task_files(self) -> Dict[str, List[UploadedFile]]:
        return self.task_files.read()

    def append_task_files(self, task_id: str, files: Iterable[UploadedFile]) -> List[UploadedFile]:
        return self.task_files.append(task_id, files)

    # budget

    async def get_budget_rows(self, client_id: str) -> List[BudgetRow]:
        if self.mock:
            await self._demo_latency()
            return self.budget.rows_for(client_id)
        return await self._live(self.backend.get_budget_rows, client_id)

    async def get_annual_budget(self, client_id: str, year: Optional[str] = None) -> float:
        return self.annual_budget.get(client_id, year)

    async def set_annual_budget(self, client_id: str, total: float, year: Optional[str] = None) -> None:
        self.annual_budget.set(client_id, total, year)

    def subscribe_budget(self, handler: Callable[[dict], object]) -> Callable[[], None]:
        """Same-context budget changes; returns the unsubscribe function."""
        return self.bus.subscribe(BUDGET_CHANGED, lambda event, payload: handler(payload))

    # transactions

    async def get_transactions(self, client_id: str) -> List[Transaction]:
        if self.mock:
            return self.transactions.for_client(client_id)
        return await self._live(self.backend.get_transactions, client_id)

    async def add_transaction(self, client_id: str, type: str, date: str, made_by: str,
                              category: str, item: str, amount: float, status: Optional[str] = None,
                              receipt_data_url: Optional[str] = None,
                              receipt_mime_type: Optional[str] = None,
                              receipt_filename: Optional[str] = None) -> str:
        if self.mock:
            return self.transactions.add(
                client_id, type, date, made_by, category, item, amount, status=status,
                receipt_data_url=receipt_data_url, receipt_mime_type=receipt_mime_type,
                receipt_filename=receipt_filename,
            )
        payload = {
            "clientId": client_id, "type": type, "date": date, "madeBy": made_by,
            "category": category, "item": item, "amount": amount,
            "receiptDataUrl": receipt_data_url, "receiptMimeType": receipt_mime_type,
            "receiptFilename": receipt_filename, "status": status,
        }
        return await self._live(self.backend.add_transaction,
                                {k: v for k, v in payload.items() if v is not None})

    async def set_transaction_status(self, tx_id: str, status: str) -> Optional[Transaction]:
        if not self.mock:
            # the live backend reconciles on its side
            logger.debug("set_transaction_status(%s) skipped in live mode", tx_id)
            return None
        return self.transactions.set_status(tx_id, status)

    # request log

    async def get_requests_by_client(self, client_id: str) -> List[RequestLogEntry]:
        if not self.mock:
            return []
        return self.requests.for_client(client_id)

    async def add_request(self, client_id: str, created_by: str, title: str, detail: str = "",
                          reason: str = "", **extra) -> str:
        return self.requests.add(client_id, created_by, title, detail=detail, reason=reason, **extra)

    async def set_request_status(self, request_id: str, status: str) -> None:
        self.requests.set_status(request_id, status)

    # organisation access and viewer session

    def current_org_id(self) -> str:
        return self.access.current_org_id()

    def select_org(self, session: Session, org_id: str) -> None:
        self.access.set_current_org_id(org_id)
        self.access.seed_defaults(session)

    def set_org_status(self, client_id: str, org_id: str, status: str) -> None:
        if not self.mock:
            # live access comes from the backend history
            logger.debug("set_org_status(%s, %s) skipped in live mode", client_id, org_id)
            return
        self.access.set_override(client_id, org_id, status)

    async def request_access(self, client_id: str, org_id: Optional[str] = None) -> None:
        """Ask for access to a client on behalf of an organisation; it shows as pending."""
        org_id = org_id or self.current_org_id()
        if self.mock:
            self.access.set_override(client_id, org_id, ACCESS_PENDING)
            return
        await self._live(self.backend.request_access, client_id, org_id)

    async def resolve_access(self, session: Session, client_id: str, org_id: Optional[str] = None) -> str:
        org_id = org_id or self.current_org_id()
        if not self.mock:
            history = await self._live(self.backend.get_org_access_history, client_id, org_id)
            return latest_status(history) or ACCESS_APPROVED
        self.access.seed_defaults(session)
        return self.access.resolve(client_id, org_id, self.directory.get(client_id))

    async def clients_with_access(self, session: Session,
                                  org_id: Optional[str] = None) -> List[Tuple[Client, str]]:
        clients = await self.get_clients()
        return [(c, await self.resolve_access(session, c.id, org_id)) for c in clients]

    async def get_users_with_access(self, client_id: str) -> List[AccessUser]:
        if self.mock:
            await self._demo_latency()
            return self.directory.users_with_access(client_id)
        return await self._live(self.backend.get_access_users, client_id)

    def get_viewer_role(self, session: Session) -> str:
        return self.viewer.get_role(session)

    def set_viewer_role(self, session: Session, role: str) -> str:
        return self.viewer.set_role(session, role)

    def clear_viewer_role(self, session: Session) -> None:
        self.viewer.clear_role(session)
