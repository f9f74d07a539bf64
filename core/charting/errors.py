"""Exceptions raised by the chart workflow and its collaborators."""

from __future__ import annotations

from typing import Any


class ChartWorkflowError(Exception):
    """Base error for the chart workflow.

    Args:
        message: Human-readable message suitable for inline display.
        code: Stable machine-readable error code.
        details: Optional structured context.
    """

    def __init__(self, message: str, code: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""

        return {"code": self.code, "message": self.message, "details": self.details}


class InputError(ChartWorkflowError):
    """User input that cannot be acted on (for example empty SQL text)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message=message, code="INPUT_ERROR", details={"field": field} if field else {})


class QueryExecutionError(ChartWorkflowError):
    """The query collaborator rejected or failed to run a query."""

    def __init__(self, message: str, query: str | None = None) -> None:
        super().__init__(
            message=message,
            code="QUERY_ERROR",
            details={"query": query[:100] if query else None},
        )


class PersistenceError(ChartWorkflowError):
    """Storing a chart definition failed."""

    def __init__(self, message: str = "Could not save the visualization.") -> None:
        super().__init__(message=message, code="PERSISTENCE_ERROR")


class WorkflowBlockedError(ChartWorkflowError):
    """An action was attempted while the workflow cannot accept it."""

    def __init__(self, message: str, state: str) -> None:
        super().__init__(message=message, code="WORKFLOW_BLOCKED", details={"state": state})
