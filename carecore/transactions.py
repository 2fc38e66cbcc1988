import base64
import logging
from typing import List, Optional
from urllib.parse import quote

from carecore import keys
from carecore.budget import BudgetRepository
from carecore.decoding import decode_transaction, normalize_status
from carecore.domain import APPROVED, PENDING, REVIEW_STATUSES, Transaction
from carecore.errors import UnknownStatusError
from carecore.events import BUDGET_CHANGED, TXN_ADDED, TXN_APPROVED, EventBus
from carecore.ids import new_id
from carecore.reconciliation import plan_status_change
from carecore.repository import CollectionRepository
from carecore.seed import seed_section
from carecore.storage import KeyValueStore

logger = logging.getLogger(__name__)


class TransactionRepository(CollectionRepository[Transaction]):
    key = keys.TRANSACTIONS
    seed_name = "transactions"
    decode = decode_transaction

    def __init__(self, store: KeyValueStore, budget: Optional[BudgetRepository] = None,
                 bus: Optional[EventBus] = None):
        super().__init__(store)
        self.budget = budget if budget is not None else BudgetRepository(store)
        if self.budget.store is not store:
            raise ValueError("transactions and budget rows must share one store to commit together")
        self.bus = bus

    def load_raw(self) -> list:
        return self._backfill_demo_receipts(super().load_raw())

    def _backfill_demo_receipts(self, raw: list) -> list:
        receipts = seed_section("demoReceipts")
        changed = False
        for tx in raw:
            if not isinstance(tx, dict):
                continue
            if not tx.get("receiptDataUrl") and not tx.get("receiptFilename") and tx.get("id") in receipts:
                tx["receiptFilename"] = receipts[tx["id"]]
                tx["receiptMimeType"] = "application/pdf"
                changed = True
        if changed:
            self.store.write(self.key, raw)
        return raw

    def for_client(self, client_id: str) -> List[Transaction]:
        return [t for t in self.all() if t.client_id == client_id]

    def get(self, tx_id: str) -> Optional[Transaction]:
        return next((t for t in self.all() if t.id == tx_id), None)

    def add(self, client_id: str, type: str, date: str, made_by: str, category: str,
            item: str, amount: float, status: Optional[str] = None,
            receipt_data_url: Optional[str] = None, receipt_mime_type: Optional[str] = None,
            receipt_filename: Optional[str] = None) -> str:
        """Record a new transaction (Pending unless told otherwise) and return its id."""
        resolved = normalize_status(status, REVIEW_STATUSES, PENDING)
        if resolved is None:
            raise UnknownStatusError(f"unknown transaction status {status!r}")
        tx = Transaction(
            id=new_id("t"),
            client_id=client_id,
            type=type,
            date=date,
            made_by=made_by,
            category=category,
            item=item,
            amount=amount,
            status=resolved,
            receipt_data_url=receipt_data_url,
            receipt_mime_type=receipt_mime_type,
            receipt_filename=receipt_filename,
        )
        self.append(tx)
        logger.info("transaction %s added for %s (%s/%s %s)", tx.id, client_id, category, item, amount)
        self._emit({"clientId": client_id, "kind": TXN_ADDED})
        return tx.id

    def set_status(self, tx_id: str, status: str) -> Optional[Transaction]:
        """Change a transaction's status; landing on Approved reconciles the budget.

        The transaction list and the budget rows are written in one commit.
        Returns the updated transaction, or None when ``tx_id`` is unknown.
        """
        raw = self.load_raw()
        change = plan_status_change(raw, self.budget.load_raw(), tx_id, status)
        if change is None:
            logger.warning("status change for unknown transaction %s ignored", tx_id)
            return None
        if not self.store.write_many(change.writes):
            logger.warning("transaction %s status change not persisted", tx_id)
        tx = change.transaction
        if change.applied:
            logger.info("applied %s to budget %s/%s/%s", tx.amount, tx.client_id, tx.category, tx.item)
        if tx.status == APPROVED:
            self._emit({"clientId": tx.client_id, "kind": TXN_APPROVED, "txId": tx_id})
        return tx

    def _emit(self, payload: dict) -> None:
        if self.bus is not None:
            self.bus.publish(BUDGET_CHANGED, payload)


def receipt_data_url(content: bytes, mime_type: Optional[str] = None) -> str:
    """Inline an uploaded receipt as a ``data:`` URL so it survives without a file server."""
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type or 'application/octet-stream'};base64,{encoded}"


def receipt_href(tx: Transaction) -> str:
    if tx.receipt_data_url:
        return tx.receipt_data_url
    if tx.receipt_filename:
        return f"/receipts/{quote(tx.receipt_filename, safe='')}"
    return ""
