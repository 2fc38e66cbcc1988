from typing import Callable, Iterable, List, Optional

from carecore.domain import Transaction

Predicate = Callable[[Transaction], bool]


def by_client(client_id: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.client_id == client_id

    return _filter


def by_status(status: Optional[str]) -> Predicate:
    """Case-insensitive; an empty status matches everything."""
    wanted = (status or "").strip().lower()

    def _filter(t: Transaction) -> bool:
        return not wanted or t.status.lower() == wanted

    return _filter


def by_date_range(start: str, end: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return start <= t.date <= end

    return _filter


def _haystack(t: Transaction) -> str:
    fields = (t.type, t.date, t.made_by, t.category, t.item, str(t.amount),
              t.status, t.receipt_filename or "")
    return " ".join(fields).lower()


def matching_search(query: str) -> Predicate:
    needle = (query or "").strip().lower()

    def _filter(t: Transaction) -> bool:
        return not needle or needle in _haystack(t)

    return _filter


def apply_filters(transactions: Iterable[Transaction], *predicates: Predicate) -> List[Transaction]:
    return [t for t in transactions if all(p(t) for p in predicates)]
