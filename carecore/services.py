from typing import Any, Callable, Dict, Iterable, Sequence

import pandas as pd

from carecore.domain import APPROVED, PENDING, BudgetRow, Transaction


class BudgetReportService:
    """Facade for a client's budget summary using injected validators and calculators.

    validators: functions taking (client_id, rows, transactions, annual_total) -> Sequence[str]
    calculators: functions taking (client_id, rows, transactions, annual_total, acc) -> dict (partial results)
    """

    def __init__(self, validators: Sequence[Callable[..., Sequence[str]]],
                 calculators: Sequence[Callable[..., Dict[str, Any]]]):
        self.validators = validators
        self.calculators = calculators

    def client_report(self, client_id: str, rows: Iterable[BudgetRow],
                      transactions: Iterable[Transaction], annual_total: float = 0) -> Dict[str, Any]:
        rows = tuple(rows)
        transactions = tuple(transactions)
        report = {"client": client_id, "validation": [], "steps": [], "result": {}}

        for v in self.validators:
            msgs = v(client_id, rows, transactions, annual_total)
            report["validation"].append({"validator": v.__name__, "messages": list(msgs)})

        acc: Dict[str, Any] = {}
        for calc in self.calculators:
            out = calc(client_id, rows, transactions, annual_total, acc)
            report["steps"].append({"calculator": calc.__name__, "output": out})
            if isinstance(out, dict):
                acc.update(out)

        report["result"] = acc
        return report


# validators

def negative_allocations(client_id, rows, transactions, annual_total):
    return [f"{r.category}/{r.item}: negative allocation {r.allocated}" for r in rows if r.allocated < 0]


def foreign_transactions(client_id, rows, transactions, annual_total):
    return [f"transaction {t.id} belongs to {t.client_id}" for t in transactions if t.client_id != client_id]


def unbudgeted_approvals(client_id, rows, transactions, annual_total):
    known = {(r.category, r.item) for r in rows}
    return [
        f"transaction {t.id} approved for {t.category}/{t.item} without a budget row"
        for t in transactions
        if t.status == APPROVED and (t.category, t.item) not in known
    ]


# calculators

def totals(client_id, rows, transactions, annual_total, acc):
    allocated = sum(r.allocated for r in rows)
    spent = sum(r.spent for r in rows)
    return {"allocated": allocated, "spent": spent, "remaining": allocated - spent}


def annual_position(client_id, rows, transactions, annual_total, acc):
    spent = acc.get("spent", sum(r.spent for r in rows))
    return {"annual_total": annual_total, "annual_remaining": annual_total - spent}


def over_budget(client_id, rows, transactions, annual_total, acc):
    return {"over_budget": [f"{r.category}/{r.item}" for r in rows if r.spent > r.allocated]}


def pending_exposure(client_id, rows, transactions, annual_total, acc):
    pending = [t for t in transactions if t.status == PENDING]
    return {"pending_count": len(pending), "pending_amount": sum(t.amount for t in pending)}


DEFAULT_VALIDATORS = (negative_allocations, foreign_transactions, unbudgeted_approvals)
DEFAULT_CALCULATORS = (totals, annual_position, over_budget, pending_exposure)


def default_report_service() -> BudgetReportService:
    return BudgetReportService(DEFAULT_VALIDATORS, DEFAULT_CALCULATORS)


def rows_frame(rows: Iterable[BudgetRow]) -> pd.DataFrame:
    frame = pd.DataFrame(
        [{**r.to_dict(), "remaining": r.remaining} for r in rows],
        columns=["category", "item", "allocated", "spent", "remaining"],
    )
    return frame.sort_values(["category", "item"]).reset_index(drop=True)


def transactions_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    columns = ["id", "date", "type", "madeBy", "category", "item", "amount", "status"]
    frame = pd.DataFrame([t.to_dict() for t in transactions], columns=columns)
    return frame.sort_values("date", ascending=False).reset_index(drop=True)
