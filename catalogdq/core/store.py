"""In-memory implementations of the persistence collaborators.

These implementations back the CLI and the test suite. They honour the
contracts in catalogdq.core.protocols: records are copied on the way in and on
the way out, transactions roll back completely on error, and advisory locks
serialize work on a single record.

Classes:
    - InMemoryEntityStore: EntityStore over nested dictionaries
    - InMemoryJobRepository: JobRepository over a dictionary of Job objects
    - StoreAuditSink: AuditSink that writes audit_log records into an EntityStore
"""

import copy
import logging
import threading
import uuid
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from catalogdq.core.exceptions import NotFoundError
from catalogdq.core.protocols import EntityStore
from catalogdq.core.schema import AUDIT_LOG, LINK
from catalogdq.jobs.models import Job

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Return the current UTC time."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Return a new random record identifier."""
    return str(uuid.uuid4())


class InMemoryEntityStore:
    """Entity store keeping every record type in a dictionary.

    The store keeps ``{record_type: {record_id: record}}``. A single re-entrant
    lock guards all access; an open transaction holds that lock until it
    commits or rolls back, so other threads never observe half-applied work.

    Example:
        >>> store = InMemoryEntityStore()
        >>> tag = store.create("tag", {"name": "FT-101", "projectId": "p1"})
        >>> store.find("tag", tag["id"])["name"]
        'FT-101'
        >>> with store.transaction():
        ...     store.delete("tag", tag["id"])
        True
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, dict[str, Any]]] = {}
        self._mutex = threading.RLock()
        self._depth = 0
        self._journal: list[tuple[str, str, dict[str, Any] | None]] = []
        self._locks: dict[tuple[str, str], list[Any]] = {}
        self._locks_guard = threading.Lock()

    def _table(self, record_type: str) -> dict[str, dict[str, Any]]:
        return self._tables.setdefault(record_type, {})

    def _put(self, record_type: str, record_id: str, record: dict[str, Any] | None) -> bool:
        """Write or remove one record, journalling its prior value inside a transaction.

        Stored records are never mutated in place, so the journal can hold the
        prior object itself.
        """
        table = self._table(record_type)
        prior = table.get(record_id)
        if self._depth:
            self._journal.append((record_type, record_id, prior))
        if record is None:
            table.pop(record_id, None)
        else:
            table[record_id] = record
        return prior is not None

    def find(self, record_type: str, record_id: str) -> dict[str, Any] | None:
        with self._mutex:
            record = self._table(record_type).get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def find_all(
        self, record_type: str, filters: Mapping[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        with self._mutex:
            records = self._table(record_type).values()
            if filters:
                records = [
                    r for r in records
                    if all(r.get(key) == value for key, value in filters.items())
                ]
            return [copy.deepcopy(r) for r in records]

    def create(self, record_type: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        record = copy.deepcopy(dict(payload))
        record["id"] = record.get("id") or new_id()
        record.setdefault("createdAt", utcnow())
        with self._mutex:
            self._put(record_type, record["id"], record)
            logger.debug("Created %s %s", record_type, record["id"])
            return copy.deepcopy(record)

    def save(self, record_type: str, record: Mapping[str, Any]) -> dict[str, Any]:
        if not record.get("id"):
            return self.create(record_type, record)

        stored = copy.deepcopy(dict(record))
        with self._mutex:
            self._put(record_type, stored["id"], stored)
            return copy.deepcopy(stored)

    def delete(self, record_type: str, record_id: str) -> bool:
        with self._mutex:
            if record_id not in self._table(record_type):
                return False
            return self._put(record_type, record_id, None)

    def find_relationships(self, entity_type: str, entity_id: str) -> list[dict[str, Any]]:
        """Return link rows referencing entity_id as source or target.

        Links are matched on the entity id alone, which is unique across
        entity types. entity_type is accepted for backends that index links
        by (type, id).
        """
        with self._mutex:
            return [
                copy.deepcopy(link)
                for link in self._table(LINK).values()
                if link.get("sourceEntityId") == entity_id
                or link.get("targetEntityId") == entity_id
            ]

    @contextmanager
    def transaction(self) -> Iterator["InMemoryEntityStore"]:
        """Run a block atomically; roll every change back if it raises.

        Writes made inside the block are journalled with the value they
        replaced. On error the outermost block replays the journal in reverse.
        """
        with self._mutex:
            outermost = self._depth == 0
            self._depth += 1
            try:
                yield self
            except BaseException:
                if outermost:
                    self._rollback()
                raise
            finally:
                self._depth -= 1
                if outermost:
                    self._journal.clear()

    def _rollback(self) -> None:
        for record_type, record_id, prior in reversed(self._journal):
            table = self._table(record_type)
            if prior is None:
                table.pop(record_id, None)
            else:
                table[record_id] = prior
        logger.debug("Transaction rolled back (%d writes undone)", len(self._journal))

    @contextmanager
    def lock(self, record_type: str, record_id: str) -> Iterator[None]:
        """Hold the advisory lock for one record.

        Each entry counts its holders and waiters and is dropped once the last
        of them releases it.
        """
        key = (record_type, record_id)
        with self._locks_guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def count(self, record_type: str) -> int:
        """Return the number of stored records of a type."""
        with self._mutex:
            return len(self._table(record_type))


class InMemoryJobRepository:
    """Job repository keeping Job objects in a dictionary.

    Jobs are copied on the way in and out so that a caller holding a Job never
    sees, or causes, changes it did not save. ``update`` is the only way to
    change a stored job and runs under a lock.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._mutex = threading.Lock()

    def get(self, job_id: str) -> Job | None:
        with self._mutex:
            job = self._jobs.get(job_id)
            return copy.deepcopy(job) if job is not None else None

    def add(self, job: Job) -> Job:
        with self._mutex:
            self._jobs[job.id] = copy.deepcopy(job)
            return copy.deepcopy(job)

    def update(self, job_id: str, mutate: Callable[[Job], None]) -> Job:
        with self._mutex:
            stored = self._jobs.get(job_id)
            if stored is None:
                raise NotFoundError(f"Job with ID {job_id} not found", record_type="job", record_id=job_id)
            working = copy.deepcopy(stored)
            mutate(working)
            self._jobs[job_id] = working
            return copy.deepcopy(working)

    def list(self, project_id: str | None = None) -> list[Job]:
        with self._mutex:
            jobs = [
                copy.deepcopy(j) for j in self._jobs.values()
                if project_id is None or j.project_id == project_id
            ]
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    def delete(self, job_id: str) -> bool:
        with self._mutex:
            return self._jobs.pop(job_id, None) is not None


class StoreAuditSink:
    """Audit sink writing audit_log records into an entity store.

    Writing into the same store as the audited change means the audit entry
    commits or rolls back together with it.
    """

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    def record(
        self,
        user_id: str,
        operation: str,
        entity_type: str,
        entity_id: str,
        changes: Mapping[str, Any],
    ) -> str:
        entry = self.store.create(
            AUDIT_LOG,
            {
                "userId": user_id,
                "operation": operation,
                "entityType": entity_type,
                "entityId": entity_id,
                "changes": dict(changes),
                "timestamp": utcnow(),
            },
        )
        logger.info("Audit %s on %s %s by %s", operation, entity_type, entity_id, user_id)
        return entry["id"]
