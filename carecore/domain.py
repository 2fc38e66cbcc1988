from dataclasses import dataclass, asdict
from typing import Optional, Tuple

FAMILY = "family"
CARER = "carer"
MANAGEMENT = "management"
VIEWER_ROLES = (FAMILY, CARER, MANAGEMENT)

PENDING = "Pending"
APPROVED = "Approved"
REJECTED = "Rejected"
OVERDUE = "Overdue"
COMPLETED = "Completed"

TASK_STATUSES = (PENDING, OVERDUE, COMPLETED)
REVIEW_STATUSES = (PENDING, APPROVED, REJECTED)
TRANSACTION_TYPES = ("Purchase", "Refund", "Adjustment")
PRIORITIES = ("Low", "Medium", "High")

# organisation access is stored lowercase
ACCESS_APPROVED = "approved"
ACCESS_PENDING = "pending"
ACCESS_REVOKED = "revoked"
ACCESS_STATUSES = (ACCESS_APPROVED, ACCESS_PENDING, ACCESS_REVOKED)


def _drop_none(d: dict) -> dict:
    return {k: v for k, v in d.items() if v is not None}


@dataclass(frozen=True)
class Client:
    id: str
    name: str
    dob: str
    dashboard_type: Optional[str] = None   # "full" | "partial"
    org_access: Optional[str] = None
    access_code: Optional[str] = None
    notes: Tuple[str, ...] = ()
    avatar_url: Optional[str] = None
    medical_notes: Optional[str] = None
    emergency_contact: Optional[str] = None
    address: Optional[str] = None

    def to_dict(self) -> dict:
        return _drop_none({
            "_id": self.id,
            "name": self.name,
            "dob": self.dob,
            "dashboardType": self.dashboard_type,
            "accessCode": self.access_code,
            "notes": list(self.notes) if self.notes else None,
            "avatarUrl": self.avatar_url,
            "orgAccess": self.org_access,
            "medicalNotes": self.medical_notes,
            "emergencyContact": self.emergency_contact,
            "address": self.address,
        })


@dataclass(frozen=True)
class Organisation:
    id: str
    name: str
    status: str  # active | pending | revoked


@dataclass(frozen=True)
class AccessUser:
    id: str
    name: str
    role: str


@dataclass(frozen=True)
class Task:
    id: str
    client_id: str
    title: str
    category: str = ""
    frequency: str = ""
    last_done: str = ""   # YYYY-MM-DD
    next_due: str = ""    # YYYY-MM-DD
    status: str = PENDING
    comments: Tuple[str, ...] = ()
    files: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "clientId": self.client_id,
            "title": self.title,
            "category": self.category,
            "frequency": self.frequency,
            "lastDone": self.last_done,
            "nextDue": self.next_due,
            "status": self.status,
            "comments": list(self.comments),
            "files": list(self.files),
        }


@dataclass(frozen=True)
class TaskCatalogItem:
    id: str
    title: str
    category: str
    default_frequency: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return _drop_none({
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "defaultFrequency": self.default_frequency,
            "description": self.description,
        })


@dataclass(frozen=True)
class UploadedFile:
    name: str
    data_url: str
    mime_type: str

    def to_dict(self) -> dict:
        return {"name": self.name, "dataUrl": self.data_url, "mimeType": self.mime_type}


@dataclass(frozen=True)
class BudgetRow:
    item: str
    category: str
    allocated: float
    spent: float

    @property
    def remaining(self) -> float:
        return self.allocated - self.spent

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Transaction:
    id: str
    client_id: str
    type: str
    date: str
    made_by: str
    category: str
    item: str
    amount: float
    status: str = PENDING
    receipt_data_url: Optional[str] = None
    receipt_mime_type: Optional[str] = None
    receipt_filename: Optional[str] = None
    # set once the amount has been added to the matching budget row
    budget_applied: bool = False

    def to_dict(self) -> dict:
        d = _drop_none({
            "id": self.id,
            "clientId": self.client_id,
            "type": self.type,
            "date": self.date,
            "madeBy": self.made_by,
            "category": self.category,
            "item": self.item,
            "amount": self.amount,
            "receiptDataUrl": self.receipt_data_url,
            "receiptMimeType": self.receipt_mime_type,
            "receiptFilename": self.receipt_filename,
            "status": self.status,
        })
        if self.budget_applied:
            d["budgetApplied"] = True
        return d


@dataclass(frozen=True)
class RequestLogEntry:
    id: str
    client_id: str
    created_at: str   # ISO timestamp
    created_by: str
    title: str
    detail: str = ""
    reason: str = ""
    status: str = PENDING
    related_task_id: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None

    def to_dict(self) -> dict:
        return _drop_none({
            "id": self.id,
            "clientId": self.client_id,
            "createdAt": self.created_at,
            "createdBy": self.created_by,
            "title": self.title,
            "detail": self.detail,
            "reason": self.reason,
            "status": self.status,
            "relatedTaskId": self.related_task_id,
            "category": self.category,
            "priority": self.priority,
        })


@dataclass(frozen=True)
class ActiveClient:
    id: Optional[str]
    name: str = ""

