import logging
from typing import Any, Callable, Generic, List, Optional, Sequence, TypeVar

from carecore.decoding import DecodeError, Either, decode_all
from carecore.seed import seed_section
from carecore.storage import KeyValueStore

logger = logging.getLogger(__name__)

R = TypeVar("R")


class CollectionRepository(Generic[R]):
    """One persisted JSON list: read, seed on first use, decode, write back whole.

    Subclasses set ``key``, ``decode`` and ``seed_name``.
    """

    key: str = ""
    seed_name: Optional[str] = None
    decode: Callable[[Any, int], Either]

    def __init__(self, store: KeyValueStore):
        self.store = store
        self.last_errors: List[DecodeError] = []

    def seed(self) -> List[dict]:
        return list(seed_section(self.seed_name)) if self.seed_name else []

    def load_raw(self) -> List[Any]:
        raw = self.store.read(self.key, None)
        if isinstance(raw, list) and raw:
            return raw
        if raw is not None and not isinstance(raw, list):
            logger.warning("%r holds %s instead of a list; reseeding", self.key, type(raw).__name__)
        seeded = self.seed()
        self.store.write(self.key, seeded)
        return seeded

    def hydrate(self, raw: List[Any]) -> List[R]:
        records, errors = decode_all(raw, type(self).decode)
        self.last_errors = errors
        for err in errors:
            logger.warning("dropping %s[%s]: %s", self.key, err.index, err.message)
        return records

    def all(self) -> List[R]:
        return self.hydrate(self.load_raw())

    def save(self, records: Sequence[R]) -> bool:
        return self.store.write(self.key, [r.to_dict() for r in records])

    def append(self, record: R) -> R:
        # append to the raw list so records this version cannot decode are kept
        raw = self.load_raw()
        raw.append(record.to_dict())
        self.store.write(self.key, raw)
        return record
