import logging
import re
from dataclasses import replace
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from carecore import keys
from carecore.decoding import decode_request, normalize_status
from carecore.domain import PENDING, REVIEW_STATUSES, RequestLogEntry
from carecore.errors import UnknownStatusError
from carecore.ids import new_id
from carecore.repository import CollectionRepository

logger = logging.getLogger(__name__)

# "Reason:" or full-width "Reason：", any case
_REASON_MARKER = re.compile(r"Reason[:：]", re.IGNORECASE)
_REASON_SPLIT = re.compile(r"\n+\s*Reason[:：]\s*", re.IGNORECASE)
_DETAILS_LABEL = re.compile(r"^Details[:：]\s*", re.IGNORECASE)


def split_combined(text: str) -> Tuple[str, Optional[str]]:
    """Split legacy 'Details: ...\\nReason: ...' text into (detail, reason)."""
    parts = _REASON_SPLIT.split(text)
    if len(parts) >= 2:
        return _DETAILS_LABEL.sub("", parts[0]).strip(), "\n".join(parts[1:]).strip()
    return text.strip(), None


def normalize_request(entry: RequestLogEntry) -> RequestLogEntry:
    """Move a reason glued into ``detail`` into ``reason``; records already split are untouched."""
    if entry.reason or not _REASON_MARKER.search(entry.detail):
        return entry
    detail, reason = split_combined(entry.detail)
    if reason is None:
        return replace(entry, detail=detail)
    return replace(entry, detail=detail, reason=reason)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RequestLogRepository(CollectionRepository[RequestLogEntry]):
    key = keys.REQUESTS
    seed_name = "requests"
    decode = decode_request

    def all(self) -> List[RequestLogEntry]:
        # normalisation is applied on every read and never written back
        return [normalize_request(r) for r in super().all()]

    def for_client(self, client_id: str) -> List[RequestLogEntry]:
        """Newest first."""
        mine = [r for r in self.all() if r.client_id == client_id]
        return sorted(mine, key=lambda r: r.created_at, reverse=True)

    def add(self, client_id: str, created_by: str, title: str, detail: str = "", reason: str = "",
            status: Optional[str] = None, created_at: Optional[str] = None,
            related_task_id: Optional[str] = None, category: Optional[str] = None,
            priority: Optional[str] = None) -> str:
        resolved = normalize_status(status, REVIEW_STATUSES, PENDING)
        if resolved is None:
            raise UnknownStatusError(f"unknown request status {status!r}")
        entry = RequestLogEntry(
            id=new_id("rq"),
            client_id=client_id,
            created_at=created_at or _now_iso(),
            created_by=created_by,
            title=title,
            detail=detail,
            reason=reason,
            status=resolved,
            related_task_id=related_task_id,
            category=category,
            priority=priority,
        )
        self.append(entry)
        return entry.id

    def set_status(self, request_id: str, status: str) -> bool:
        resolved = normalize_status(status, REVIEW_STATUSES, None)
        if resolved is None:
            raise UnknownStatusError(f"unknown request status {status!r}")
        raw = self.load_raw()
        for item in raw:
            if isinstance(item, dict) and item.get("id") == request_id:
                item["status"] = resolved
                self.store.write(self.key, raw)
                return True
        logger.warning("status change for unknown request %s ignored", request_id)
        return False
