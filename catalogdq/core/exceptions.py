"""Custom exception classes for catalogdq error handling.

This module defines the exception hierarchy for the data-quality core:
- NotFoundError: A referenced entity, job, result or profile does not exist
- PreconditionError: An operation was requested in a state that forbids it
- UnsupportedEntityTypeError: An entity type outside the supported set
- ImportPipelineError: A job-level fault while running an import
- ValidationBlockedError: A save refused because of Error findings
- RowSourceError: An input file could not be read into rows

All exceptions inherit from CatalogError for consistent error handling.
"""

from typing import Any


class CatalogError(Exception):
    """Base exception for all catalogdq errors.

    Provides a common base class for all custom exceptions in the
    data-quality core, enabling catch-all error handling when needed.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error description
            context: Optional dictionary of contextual information (entity ids,
                    job ids, statuses, etc.)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        if not self.context:
            return self.message

        context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"{self.message} [{context_str}]"


class NotFoundError(CatalogError):
    """Exception raised when a referenced record does not exist.

    Context typically includes:
        - record_type: Kind of record looked up (tag, job, validation_result, ...)
        - record_id: Identifier that was not found
    """

    def __init__(
        self,
        message: str,
        record_type: str | None = None,
        record_id: str | None = None,
        **extra_context: Any,
    ) -> None:
        context: dict[str, Any] = {}
        if record_type is not None:
            context["record_type"] = record_type
        if record_id is not None:
            context["record_id"] = record_id
        context.update(extra_context)

        super().__init__(message, context)


class PreconditionError(CatalogError):
    """Exception raised when an operation is not allowed in the current state.

    Context typically includes:
        - operation: Name of the refused operation
        - state: The state that made the operation invalid
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        state: str | None = None,
        **extra_context: Any,
    ) -> None:
        context: dict[str, Any] = {}
        if operation is not None:
            context["operation"] = operation
        if state is not None:
            context["state"] = state
        context.update(extra_context)

        super().__init__(message, context)


class AcknowledgementError(PreconditionError):
    """Exception raised when acknowledging a finding that cannot be silenced.

    Error-severity findings block saves and are never acknowledgeable.
    """

    def __init__(
        self,
        message: str,
        result_id: str | None = None,
        severity: str | None = None,
        **extra_context: Any,
    ) -> None:
        if result_id is not None:
            extra_context["result_id"] = result_id
        super().__init__(message, operation="acknowledge", state=severity, **extra_context)


class InvalidJobTransitionError(PreconditionError):
    """Exception raised when a job is moved to a status its state forbids.

    Context typically includes:
        - job_id: Identifier of the job
        - state: Current job status
        - target: Requested job status
    """

    def __init__(
        self,
        message: str,
        job_id: str | None = None,
        current: str | None = None,
        target: str | None = None,
        **extra_context: Any,
    ) -> None:
        if job_id is not None:
            extra_context["job_id"] = job_id
        if target is not None:
            extra_context["target"] = target
        super().__init__(message, operation="transition", state=current, **extra_context)


class RegistryFrozenError(PreconditionError):
    """Exception raised when registering rules after startup registration ended."""

    def __init__(self, message: str, rule_name: str | None = None, **extra_context: Any) -> None:
        if rule_name is not None:
            extra_context["rule_name"] = rule_name
        super().__init__(message, operation="register_rule", state="frozen", **extra_context)


class UnsupportedEntityTypeError(CatalogError):
    """Exception raised for an entity type the operation cannot handle.

    Context typically includes:
        - entity_type: The rejected entity type
        - supported: The entity types that are accepted
    """

    def __init__(
        self,
        message: str,
        entity_type: str | None = None,
        supported: list[str] | None = None,
        **extra_context: Any,
    ) -> None:
        context: dict[str, Any] = {}
        if entity_type is not None:
            context["entity_type"] = entity_type
        if supported is not None:
            context["supported"] = supported
        context.update(extra_context)

        super().__init__(message, context)


class ImportPipelineError(CatalogError):
    """Exception raised when an import job fails outside per-row handling.

    This wraps faults such as an unavailable row source. The job is marked
    Failed with the message; no partial report is synthesized.

    Context typically includes:
        - job_id: Identifier of the import job
        - step: Which step failed (load_rows, start, finish)
        - source_file: Name of the imported file
    """

    def __init__(
        self,
        message: str,
        job_id: str | None = None,
        step: str | None = None,
        source_file: str | None = None,
        **extra_context: Any,
    ) -> None:
        context: dict[str, Any] = {}
        if job_id is not None:
            context["job_id"] = job_id
        if step is not None:
            context["step"] = step
        if source_file is not None:
            context["source_file"] = source_file
        context.update(extra_context)

        super().__init__(message, context)


class ValidationBlockedError(CatalogError):
    """Exception raised when Error findings prevent an entity from being saved.

    Context typically includes:
        - entity_type: Type of the entity being saved
        - entity_id: Identifier of the entity (absent for creates)
        - errors: The "rule: message" strings of the blocking findings
    """

    def __init__(
        self,
        message: str,
        entity_type: str | None = None,
        entity_id: str | None = None,
        errors: list[str] | None = None,
        **extra_context: Any,
    ) -> None:
        context: dict[str, Any] = {}
        if entity_type is not None:
            context["entity_type"] = entity_type
        if entity_id is not None:
            context["entity_id"] = entity_id
        if errors is not None:
            context["errors"] = errors
        context.update(extra_context)

        super().__init__(message, context)


class RowSourceError(CatalogError):
    """Exception raised when a row source cannot produce its rows.

    Context typically includes:
        - file_path: Path to the file that failed to read
        - format: Reader used for the file
        - reason: Specific reason for the failure
    """

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        format: str | None = None,
        reason: str | None = None,
        **extra_context: Any,
    ) -> None:
        context: dict[str, Any] = {}
        if file_path is not None:
            context["file_path"] = file_path
        if format is not None:
            context["format"] = format
        if reason is not None:
            context["reason"] = reason
        context.update(extra_context)

        super().__init__(message, context)
