"""Protocol definitions for the collaborators the data-quality core consumes.

The core never talks to a database, a file or a queue directly. Everything
outside the validation, merge and import logic is reached through the narrow
interfaces defined here, so tests and the CLI can plug in the in-memory
implementations from catalogdq.core.store and catalogdq.core.queue while a
deployment plugs in real persistence.

Protocols:
    - EntityStore: Entity, relationship and attachment access with transactions
    - RowSource: Produces the parsed rows of an already-uploaded file
    - WorkQueue: Accepts import jobs for asynchronous execution
    - AuditSink: Records audit entries for mutating operations
    - JobRepository: Persists Job state machine instances

All implementations must:
    - Return copies of stored records (callers may mutate what they receive)
    - Raise descriptive errors from catalogdq.core.exceptions
"""

from collections.abc import Callable, Iterable, Mapping
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from catalogdq.jobs.models import Job


class EntityStore(Protocol):
    """Protocol for the entity store collaborator.

    Records are plain dictionaries keyed by field name. Every record has an
    "id" field assigned by the store on create. Record types cover catalog
    entities (tag, equipment, alarm, document) as well as auxiliary rows
    (link, attachment, audit_log, validation_result).

    Transactions: everything executed inside ``with store.transaction():`` is
    committed when the block exits normally and rolled back entirely when it
    raises. Transactions may nest; only the outermost one commits.

    Locks: ``with store.lock(record_type, record_id):`` holds an advisory lock
    on one record for the duration of the block. Used to serialize merges
    against the same target entity.
    """

    def find(self, record_type: str, record_id: str) -> dict[str, Any] | None:
        """Return the record with the given id, or None."""
        ...

    def find_all(
        self, record_type: str, filters: Mapping[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Return all records whose fields equal every filter value."""
        ...

    def create(self, record_type: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Insert a new record and return it with its generated id."""
        ...

    def save(self, record_type: str, record: Mapping[str, Any]) -> dict[str, Any]:
        """Insert or replace the record keyed by its "id" field."""
        ...

    def delete(self, record_type: str, record_id: str) -> bool:
        """Delete a record. Returns False if it did not exist."""
        ...

    def find_relationships(self, entity_type: str, entity_id: str) -> list[dict[str, Any]]:
        """Return every link row that references entity_id on either side."""
        ...

    def transaction(self) -> AbstractContextManager["EntityStore"]:
        """Open an all-or-nothing unit of work."""
        ...

    def lock(self, record_type: str, record_id: str) -> AbstractContextManager[None]:
        """Hold an advisory lock on one record."""
        ...


class RowSource(Protocol):
    """Protocol for row sources.

    A row source yields a finite, ordered sequence of rows, each a mapping of
    column name to raw cell value, from a file that has already been uploaded.
    The header row is not part of the sequence.
    """

    def rows(self) -> Iterable[Mapping[str, Any]]:
        """Return the parsed rows in file order."""
        ...


class WorkQueue(Protocol):
    """Protocol for the work queue that executes import jobs asynchronously.

    Implementations must invoke the registered handler exactly once per
    enqueued job.
    """

    def enqueue(self, job_id: str, project_id: str, payload: Any) -> None:
        """Accept a job for later execution."""
        ...


class AuditSink(Protocol):
    """Protocol for the audit log collaborator."""

    def record(
        self,
        user_id: str,
        operation: str,
        entity_type: str,
        entity_id: str,
        changes: Mapping[str, Any],
    ) -> str:
        """Write one audit entry and return its id."""
        ...


class JobRepository(Protocol):
    """Protocol for Job persistence.

    ``update`` applies a mutation to the stored job atomically with respect to
    other ``update`` calls on the same job and returns the stored result.
    """

    def get(self, job_id: str) -> "Job | None":
        ...

    def add(self, job: "Job") -> "Job":
        ...

    def update(self, job_id: str, mutate: Callable[["Job"], None]) -> "Job":
        ...

    def list(self, project_id: str | None = None) -> list["Job"]:
        ...

    def delete(self, job_id: str) -> bool:
        ...
