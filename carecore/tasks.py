import logging
from dataclasses import replace
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from carecore import keys
from carecore.decoding import decode_all, decode_catalog_item, decode_task, decode_uploaded_file, normalize_status
from carecore.domain import PENDING, TASK_STATUSES, Task, TaskCatalogItem, UploadedFile
from carecore.errors import UnknownStatusError
from carecore.ids import new_id
from carecore.repository import CollectionRepository

logger = logging.getLogger(__name__)

UNIT_DAYS = {"day": 1, "week": 7, "month": 30, "year": 365}


class TaskRepository(CollectionRepository[Task]):
    key = keys.TASKS
    seed_name = "tasks"
    decode = decode_task

    def all(self) -> List[Task]:
        raw = self.load_raw()
        tasks = self.hydrate(raw)
        # persist the hydrated shape so other readers see complete records
        if not self.last_errors and [t.to_dict() for t in tasks] != raw:
            self.save(tasks)
        return tasks

    def save(self, tasks: Iterable[Task]) -> bool:
        return super().save([replace(t, status=task_status(t.status)) for t in tasks])

    def for_client(self, client_id: str) -> List[Task]:
        return [t for t in self.all() if t.client_id == client_id]

    def add(self, client_id: str, title: str, category: str = "", frequency: str = "",
            last_done: str = "", next_due: str = "", status: str = PENDING) -> Task:
        task = Task(
            id=new_id(),
            client_id=client_id,
            title=title,
            category=category,
            frequency=frequency,
            last_done=last_done,
            next_due=next_due or last_done,
            status=task_status(status),
        )
        return self.append(task)


def task_status(status: Optional[str]) -> str:
    """Canonical task status; unknown values raise ``UnknownStatusError``."""
    resolved = normalize_status(status, TASK_STATUSES, PENDING)
    if resolved is None:
        raise UnknownStatusError(f"unknown task status {status!r}")
    return resolved


def frequency_text(count: int, unit: str) -> str:
    """'Every 2 weeks'; empty for a non-positive count."""
    if count <= 0:
        return ""
    return f"Every {count} {unit}{'s' if count > 1 else ''}"


def next_due(date_from: str, count: int, unit: str) -> str:
    if not date_from or count <= 0:
        return date_from or ""
    start = date.fromisoformat(date_from)
    return (start + timedelta(days=count * UNIT_DAYS[unit])).isoformat()


class TaskCatalogRepository(CollectionRepository[TaskCatalogItem]):
    key = keys.TASK_CATALOG
    seed_name = "taskCatalog"
    decode = decode_catalog_item

    def category_options(self) -> List[str]:
        return sorted({i.category for i in self.all() if i.category})

    def titles_for(self, category: str) -> List[str]:
        return [i.title for i in self.all() if i.category == category]

    def find(self, category: str, title: str) -> Optional[TaskCatalogItem]:
        return next((i for i in self.all() if i.category == category and i.title == title), None)


class TaskFilesRepository:
    """taskId -> uploaded files, shared by every role."""

    def __init__(self, store):
        self.store = store

    def read(self) -> Dict[str, List[UploadedFile]]:
        raw = self.store.read(keys.TASK_FILES, {})
        if not isinstance(raw, dict):
            return {}
        files = {}
        for task_id, items in raw.items():
            decoded, errors = decode_all(items, decode_uploaded_file)
            for err in errors:
                logger.warning("task %s file %s: %s", task_id, err.index, err.message)
            files[str(task_id)] = decoded
        return files

    def write(self, files: Dict[str, Iterable[UploadedFile]]) -> bool:
        return self.store.write(keys.TASK_FILES, {
            task_id: [f.to_dict() for f in items] for task_id, items in files.items()
        })

    def append(self, task_id: str, files: Iterable[UploadedFile]) -> List[UploadedFile]:
        current = self.read()
        current[task_id] = current.get(task_id, []) + list(files)
        self.write(current)
        return current[task_id]

    def for_task(self, task_id: str) -> List[UploadedFile]:
        return self.read().get(task_id, [])
