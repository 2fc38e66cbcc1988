"""Key/value storage scoped to a browser-profile-like area or a login session.

A backend holds raw string values. Several ``KeyValueStore`` contexts may be
attached to one backend; a successful write in one context is announced to
every *other* attached context as a ``StorageEvent`` carrying the changed key.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, NamedTuple, Optional
from uuid import uuid4

logger = logging.getLogger(__name__)

PERSISTENT = "persistent"
SESSION = "session"


class StorageEvent(NamedTuple):
    key: str
    area: str
    ts: str


class StorageWriteError(Exception):
    """Raised by a backend that refuses a write (quota, disabled storage)."""


class MemoryBackend:
    """In-process backend; share one instance between stores to model several tabs."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._contexts: List["KeyValueStore"] = []
        self._lock = threading.Lock()

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def keys(self) -> List[str]:
        return list(self._data)

    def set_items(self, items: Mapping[str, Optional[str]], origin: Optional["KeyValueStore"] = None) -> None:
        """Apply all items at once; a ``None`` value removes the key."""
        with self._lock:
            changed = [k for k, v in items.items() if self._data.get(k) != v]
            for key, value in items.items():
                if value is None:
                    self._data.pop(key, None)
                else:
                    self._data[key] = value
        # like browser storage events, rewriting an identical value is silent
        self._notify(changed, origin)

    def attach(self, ctx: "KeyValueStore") -> None:
        if ctx not in self._contexts:
            self._contexts.append(ctx)

    def detach(self, ctx: "KeyValueStore") -> None:
        if ctx in self._contexts:
            self._contexts.remove(ctx)

    def _notify(self, keys: Iterable[str], origin: Optional["KeyValueStore"]) -> None:
        for ctx in list(self._contexts):
            if ctx is origin:
                continue
            for key in keys:
                ctx._dispatch(key)


class JsonFileBackend(MemoryBackend):
    """Whole profile kept in one JSON file; every commit is an atomic file replace.

    Writes made by another process are picked up by :meth:`poll`, which emits
    events for the keys whose values differ from the last snapshot.
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        super().__init__(self._load())

    def _load(self) -> Dict[str, str]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("store file %s unreadable, starting empty: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def set_items(self, items: Mapping[str, Optional[str]], origin: Optional["KeyValueStore"] = None) -> None:
        with self._lock:
            merged = self._load()
            for key, value in items.items():
                if value is None:
                    merged.pop(key, None)
                else:
                    merged[key] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".store-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(merged, f)
                os.replace(tmp, self.path)
            except OSError as e:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise StorageWriteError(str(e)) from e
            changed = [k for k, v in items.items() if self._data.get(k) != v]
            self._data = merged
        self._notify(changed, origin)

    def poll(self) -> List[str]:
        """Reload the file and announce keys changed by other processes."""
        with self._lock:
            fresh = self._load()
            changed = [k for k in set(fresh) | set(self._data) if fresh.get(k) != self._data.get(k)]
            self._data = fresh
        if changed:
            self._notify(changed, None)
        return sorted(changed)


class KeyValueStore:
    """One execution context's view of a backend.

    ``read`` never raises: missing keys and malformed payloads resolve to the
    caller's fallback. Writes are best effort; a rejected write is logged and
    reported through the boolean return value only.
    """

    def __init__(self, backend: Optional[MemoryBackend] = None, area: str = PERSISTENT):
        self.backend = backend if backend is not None else MemoryBackend()
        self.area = area
        self._listeners: List[Callable[[StorageEvent], None]] = []
        self.backend.attach(self)

    def close(self) -> None:
        self.backend.detach(self)
        self._listeners.clear()

    # raw strings

    def read_text(self, key: str) -> Optional[str]:
        try:
            return self.backend.get_item(key)
        except Exception as e:  # storage disabled or backend broken
            logger.debug("read of %r failed: %s", key, e)
            return None

    def write_text(self, key: str, value: str) -> bool:
        return self._commit({key: value})

    # JSON values

    def read(self, key: str, fallback: Any = None) -> Any:
        raw = self.read_text(key)
        if raw is None:
            return fallback
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("malformed payload under %r, using fallback", key)
            return fallback

    def write(self, key: str, value: Any) -> bool:
        return self.write_many({key: value})

    def write_many(self, values: Mapping[str, Any]) -> bool:
        """Serialize every value and commit them in one backend operation."""
        try:
            encoded = {k: json.dumps(v) for k, v in values.items()}
        except (TypeError, ValueError) as e:
            logger.warning("could not serialize %s: %s", sorted(values), e)
            return False
        return self._commit(encoded)

    def remove(self, key: str) -> bool:
        return self._commit({key: None})

    def _commit(self, items: Mapping[str, Optional[str]]) -> bool:
        try:
            self.backend.set_items(items, origin=self)
        except Exception as e:
            logger.warning("write of %s to %s store rejected: %s", sorted(items), self.area, e)
            return False
        return True

    # change notifications from other contexts

    def subscribe(self, listener: Callable[[StorageEvent], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _dispatch(self, key: str) -> None:
        event = StorageEvent(key=key, area=self.area, ts=datetime.now().isoformat())
        for listener in list(self._listeners):
            listener(event)


@dataclass
class Session:
    """One login session. Session-scoped keys live in ``store``."""
    store: KeyValueStore = field(default_factory=lambda: KeyValueStore(area=SESSION))
    id: str = field(default_factory=lambda: uuid4().hex)
