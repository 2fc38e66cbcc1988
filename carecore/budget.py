import logging
import math
from datetime import date
from typing import Dict, List, Optional, Sequence

from carecore import keys
from carecore.decoding import decode_all, decode_budget_row
from carecore.domain import BudgetRow
from carecore.events import ANNUAL_TOTAL, BUDGET_CHANGED, EventBus
from carecore.seed import seed_section
from carecore.storage import KeyValueStore

logger = logging.getLogger(__name__)


class BudgetRepository:
    """Budget rows per client, persisted as ``{clientId: [row, ...]}``."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def load_raw(self) -> Dict[str, list]:
        raw = self.store.read(keys.BUDGET_BY_CLIENT, None)
        if isinstance(raw, dict) and raw:
            return raw
        seeded = seed_section("budgetByClient")
        self.store.write(keys.BUDGET_BY_CLIENT, seeded)
        return seeded

    def read_map(self) -> Dict[str, List[BudgetRow]]:
        result = {}
        for client_id, rows in self.load_raw().items():
            decoded, errors = decode_all(rows, decode_budget_row)
            for err in errors:
                logger.warning("budget row %s/%s dropped: %s", client_id, err.index, err.message)
            result[client_id] = decoded
        return result

    def rows_for(self, client_id: str) -> List[BudgetRow]:
        return self.read_map().get(client_id, [])

    def save_rows(self, client_id: str, rows: Sequence[BudgetRow]) -> bool:
        raw = self.load_raw()
        raw[client_id] = [r.to_dict() for r in rows]
        return self.store.write(keys.BUDGET_BY_CLIENT, raw)


def current_year() -> str:
    return str(date.today().year)


class AnnualBudgetRepository:
    """Annual total budget per client and year: ``{clientId: {"2025": 12000}}``."""

    def __init__(self, store: KeyValueStore, bus: Optional[EventBus] = None):
        self.store = store
        self.bus = bus

    def _read(self) -> Dict[str, Dict[str, float]]:
        raw = self.store.read(keys.ANNUAL_BUDGET_BY_CLIENT, {})
        return raw if isinstance(raw, dict) else {}

    def get(self, client_id: str, year: Optional[str] = None) -> float:
        per_year = self._read().get(client_id)
        if not isinstance(per_year, dict):
            return 0
        value = per_year.get(year or current_year(), 0)
        return value if isinstance(value, (int, float)) and not isinstance(value, bool) else 0

    def set(self, client_id: str, total: float, year: Optional[str] = None) -> int:
        year = year or current_year()
        clamped = max(0, math.floor(total or 0))
        m = self._read()
        if not isinstance(m.get(client_id), dict):
            m[client_id] = {}
        m[client_id][year] = clamped
        self.store.write(keys.ANNUAL_BUDGET_BY_CLIENT, m)
        if self.bus is not None:
            self.bus.publish(BUDGET_CHANGED, {"clientId": client_id, "year": year, "kind": ANNUAL_TOTAL})
        return clamped
