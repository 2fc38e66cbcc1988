"""Propagation of approved transactions into budget totals.

Any status transition is accepted. The transition that lands on ``Approved``
adds the transaction amount to the budget row with the same client, category
and item (exact string match), or creates ``{allocated: 0, spent: amount}``.
A transaction is applied at most once: the ``budget_applied`` marker is set in
the same commit as the budget update and is never cleared, so leaving
``Approved`` does not reverse the amount and re-approving does not add it again.
"""
from dataclasses import replace
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from carecore import keys
from carecore.decoding import decode_budget_row, decode_transaction, normalize_status
from carecore.domain import APPROVED, REVIEW_STATUSES, BudgetRow, Transaction
from carecore.errors import UnknownStatusError


class StatusChange(NamedTuple):
    transaction: Transaction
    previous_status: str
    applied: bool
    writes: Dict[str, Any]


def apply_to_rows(
    rows: Tuple[BudgetRow, ...], category: str, item: str, amount: float
) -> Tuple[BudgetRow, ...]:
    idx = next((i for i, r in enumerate(rows) if r.category == category and r.item == item), None)
    if idx is None:
        return rows + (BudgetRow(item=item, category=category, allocated=0, spent=amount),)
    return tuple(
        replace(r, spent=r.spent + amount) if i == idx else r
        for i, r in enumerate(rows)
    )


def apply_to_budget(
    budget_map: Dict[str, list], client_id: str, category: str, item: str, amount: float
) -> Dict[str, list]:
    """Return a new ``budgetByClient`` payload with ``amount`` added to the matching row.

    Works on the stored entries: only the matching row changes, and entries
    that do not decode are carried over as they are.
    """
    stored = budget_map.get(client_id)
    if stored is None:
        entries = []
    elif isinstance(stored, list):
        entries = list(stored)
    else:
        # a stray non-list value is kept as the first entry
        entries = [stored]

    for i, raw in enumerate(entries):
        if not isinstance(raw, dict) or raw.get("category") != category or raw.get("item") != item:
            continue
        decoded = decode_budget_row(raw, i)
        if decoded.is_left():
            continue
        entries[i] = {**raw, "spent": decoded.get_or_else(None).spent + amount}
        break
    else:
        entries.append(BudgetRow(item=item, category=category, allocated=0, spent=amount).to_dict())

    result = dict(budget_map)
    result[client_id] = entries
    return result


def should_apply(tx: Transaction, new_status: str) -> bool:
    return new_status == APPROVED and not tx.budget_applied


def coerce_status(status: str) -> str:
    s = normalize_status(status, REVIEW_STATUSES, None)
    if s is None:
        raise UnknownStatusError(f"unknown transaction status {status!r}")
    return s


def plan_status_change(
    raw_transactions: List[Any],
    budget_map: Optional[Dict[str, list]],
    tx_id: str,
    status: str,
) -> Optional[StatusChange]:
    """Compute the single commit for setting ``tx_id`` to ``status``; None if not found.

    ``budget_map`` is only consulted when the amount has to be applied.
    """
    new_status = coerce_status(status)
    for i, raw in enumerate(raw_transactions):
        decoded = decode_transaction(raw, i)
        if decoded.is_left():
            continue
        tx = decoded.get_or_else(None)
        if tx.id != tx_id:
            continue

        apply = should_apply(tx, new_status)
        updated = replace(tx, status=new_status, budget_applied=tx.budget_applied or apply)
        transactions = list(raw_transactions)
        transactions[i] = {**raw, **updated.to_dict()}
        writes: Dict[str, Any] = {keys.TRANSACTIONS: transactions}
        if apply:
            writes[keys.BUDGET_BY_CLIENT] = apply_to_budget(
                budget_map or {}, tx.client_id, tx.category, tx.item, tx.amount
            )
        return StatusChange(transaction=updated, previous_status=tx.status, applied=apply, writes=writes)
    return None
