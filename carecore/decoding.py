"""Typed decode step for persisted records.

Each ``decode_*`` function takes one raw JSON value and its position in the
collection and returns ``Right(record)`` with every optional field filled in,
or ``Left(DecodeError)`` when the value cannot be turned into a record.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from carecore.domain import (
    ACCESS_STATUSES, APPROVED, PENDING, REVIEW_STATUSES, TASK_STATUSES,
    AccessUser, BudgetRow, Client, RequestLogEntry, Task, TaskCatalogItem,
    Transaction, UploadedFile,
)
from carecore.seed import FULL_DASH_ID

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')


class Either(Generic[E, T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_right(self) -> bool:
        pass

    def is_left(self) -> bool:
        return not self.is_right()


class Right(Either[E, T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f):
        return Right(f(self._value))

    def bind(self, f):
        return f(self._value)

    def get_or_else(self, default):
        return self._value

    def is_right(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"Right({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Right) and self._value == other._value


class Left(Either[E, T]):

    def __init__(self, error: E):
        self.error = error

    def map(self, f):
        return self

    def bind(self, f):
        return self

    def get_or_else(self, default):
        return default

    def is_right(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"Left({self.error!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Left) and self.error == other.error


@dataclass(frozen=True)
class DecodeError:
    kind: str
    field: Optional[str]
    message: str
    index: Optional[int] = None


def _fail(kind: str, field: Optional[str], message: str, index: Optional[int]) -> Left:
    return Left(DecodeError(kind=kind, field=field, message=message, index=index))


class _Invalid(Exception):
    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


def _text(raw: dict, key: str, default: str = "") -> str:
    v = raw.get(key)
    if v is None:
        return default
    if isinstance(v, bool) or not isinstance(v, (str, int, float)):
        raise _Invalid(key, f"{key} must be a string, got {type(v).__name__}")
    return str(v)


def _opt_text(raw: dict, key: str) -> Optional[str]:
    if raw.get(key) is None:
        return None
    return _text(raw, key)


def _number(raw: dict, key: str, default: float = 0) -> float:
    v = raw.get(key)
    if v is None or v == "":
        return default
    if isinstance(v, bool):
        raise _Invalid(key, f"{key} must be a number")
    if isinstance(v, (int, float)):
        return v
    if isinstance(v, str):
        try:
            n = float(v)
        except ValueError:
            raise _Invalid(key, f"{key}={v!r} is not a number") from None
        return int(n) if n.is_integer() else n
    raise _Invalid(key, f"{key} must be a number, got {type(v).__name__}")


def _strings(raw: dict, key: str) -> Tuple[str, ...]:
    v = raw.get(key)
    if v is None:
        return ()
    if not isinstance(v, list):
        raise _Invalid(key, f"{key} must be a list")
    return tuple(str(x) for x in v)


def normalize_status(value: Any, allowed: Sequence[str], default: str = PENDING) -> Optional[str]:
    """Case-insensitive match against ``allowed``; absent -> default, unknown -> None."""
    if value is None or value == "":
        return default
    if not isinstance(value, str):
        return None
    folded = value.strip().lower()
    for s in allowed:
        if s.lower() == folded:
            return s
    return None


def _status(raw: dict, key: str, allowed: Sequence[str], default: str = PENDING) -> str:
    s = normalize_status(raw.get(key), allowed, default)
    if s is None:
        raise _Invalid(key, f"unknown {key} {raw.get(key)!r}")
    return s


def _decoder(build: Callable[[dict, int], Any]) -> Callable[[Any, int], Either]:
    @wraps(build)
    def decode(raw: Any, index: int = 0) -> Either:
        if not isinstance(raw, dict):
            return _fail("not_an_object", None, f"expected object, got {type(raw).__name__}", index)
        try:
            return Right(build(raw, index))
        except _Invalid as e:
            return _fail("invalid_field", e.field, str(e), index)
    return decode


@_decoder
def decode_task(raw: dict, index: int) -> Task:
    title = raw.get("title")
    return Task(
        id=_text(raw, "id", str(index + 1)),
        client_id=_text(raw, "clientId", FULL_DASH_ID),
        title=title if isinstance(title, str) else f"Task {index + 1}",
        category=_text(raw, "category"),
        frequency=_text(raw, "frequency"),
        last_done=_text(raw, "lastDone", _text(raw, "nextDue")),
        next_due=_text(raw, "nextDue"),
        status=_status(raw, "status", TASK_STATUSES),
        comments=_strings(raw, "comments"),
        files=_strings(raw, "files"),
    )


@_decoder
def decode_catalog_item(raw: dict, index: int) -> TaskCatalogItem:
    return TaskCatalogItem(
        id=_text(raw, "id", f"tc-{index + 1}"),
        title=_text(raw, "title"),
        category=_text(raw, "category"),
        default_frequency=_opt_text(raw, "defaultFrequency"),
        description=_opt_text(raw, "description"),
    )


@_decoder
def decode_budget_row(raw: dict, index: int) -> BudgetRow:
    return BudgetRow(
        item=_text(raw, "item"),
        category=_text(raw, "category"),
        allocated=_number(raw, "allocated"),
        spent=_number(raw, "spent"),
    )


@_decoder
def decode_transaction(raw: dict, index: int) -> Transaction:
    status = _status(raw, "status", REVIEW_STATUSES)
    applied = raw.get("budgetApplied")
    return Transaction(
        id=_text(raw, "id", f"t{index + 1}"),
        client_id=_text(raw, "clientId"),
        type=_text(raw, "type", "Purchase"),
        date=_text(raw, "date"),
        made_by=_text(raw, "madeBy"),
        category=_text(raw, "category"),
        item=_text(raw, "item"),
        amount=_number(raw, "amount"),
        status=status,
        receipt_data_url=_opt_text(raw, "receiptDataUrl"),
        receipt_mime_type=_opt_text(raw, "receiptMimeType"),
        receipt_filename=_opt_text(raw, "receiptFilename"),
        # records written before the marker existed: approved means already counted
        budget_applied=bool(applied) if applied is not None else status == APPROVED,
    )


@_decoder
def decode_request(raw: dict, index: int) -> RequestLogEntry:
    return RequestLogEntry(
        id=_text(raw, "id", f"rq{index + 1}"),
        client_id=_text(raw, "clientId"),
        created_at=_text(raw, "createdAt"),
        created_by=_text(raw, "createdBy"),
        title=_text(raw, "title"),
        detail=_text(raw, "detail"),
        reason=_text(raw, "reason"),
        status=_status(raw, "status", REVIEW_STATUSES),
        related_task_id=_opt_text(raw, "relatedTaskId"),
        category=_opt_text(raw, "category"),
        priority=_opt_text(raw, "priority"),
    )


@_decoder
def decode_client(raw: dict, index: int) -> Client:
    access = raw.get("orgAccess")
    return Client(
        id=_text(raw, "_id", _text(raw, "id")),
        name=_text(raw, "name"),
        dob=_text(raw, "dob"),
        dashboard_type=_opt_text(raw, "dashboardType"),
        org_access=normalize_status(access, ACCESS_STATUSES, None) if access else None,
        access_code=_opt_text(raw, "accessCode"),
        notes=_strings(raw, "notes"),
        avatar_url=_opt_text(raw, "avatarUrl"),
        medical_notes=_opt_text(raw, "medicalNotes"),
        emergency_contact=_opt_text(raw, "emergencyContact"),
        address=_opt_text(raw, "address"),
    )


@_decoder
def decode_uploaded_file(raw: dict, index: int) -> UploadedFile:
    return UploadedFile(
        name=_text(raw, "name", f"file-{index + 1}"),
        data_url=_text(raw, "dataUrl"),
        mime_type=_text(raw, "mimeType", "application/octet-stream"),
    )


@_decoder
def decode_access_user(raw: dict, index: int) -> AccessUser:
    return AccessUser(id=_text(raw, "id"), name=_text(raw, "name"), role=_text(raw, "role"))


def decode_all(items: Any, decode: Callable[[Any, int], Either]) -> Tuple[List[Any], List[DecodeError]]:
    """Decode a JSON list; returns (records, errors). A non-list decodes to nothing."""
    if not isinstance(items, list):
        return [], ([DecodeError("not_a_list", None, f"expected list, got {type(items).__name__}")]
                    if items is not None else [])
    records, errors = [], []
    for i, raw in enumerate(items):
        result = decode(raw, i)
        if result.is_right():
            records.append(result.get_or_else(None))
        else:
            errors.append(result.error)
    return records, errors
