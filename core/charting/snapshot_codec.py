"""Payload encoding/decoding helpers for chart records and workflow state."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any, cast

from analysis.dto import CHART_TYPES, DEFAULT_CHART_TYPE, AxisSelection, ChartDefinition, ChartParameters

from .catalog import SourceCatalog, frozen_map
from .workflow import DEFAULT_BANNER_SECONDS, ChartBackend, SaveWorkflow, WorkflowState


def encode_definition(definition: ChartDefinition) -> dict[str, Any]:
    """Encode a ChartDefinition into a JSON-serializable dictionary."""

    return {
        "title": definition.title,
        "description": definition.description,
        "chart_type": definition.chart_type,
        "sql_query": definition.sql_query,
        "is_parameterized": definition.is_parameterized,
        "chart_data": definition.chart_data,
    }


def encode_parameters(parameters: ChartParameters) -> dict[str, Any]:
    """Encode ChartParameters into a JSON-serializable dictionary."""

    return {
        "param_x": parameters.param_x,
        "param_y": parameters.param_y,
        "group_by": parameters.group_by,
    }


def decode_definition(payload: dict[str, Any]) -> ChartDefinition:
    """Decode a ChartDefinition from a request or stored payload.

    Args:
        payload: Dictionary previously produced by `encode_definition`, or the
            `visualization` object of an API request.

    Returns:
        ChartDefinition instance.

    Raises:
        ValueError: When the title is blank or the chart type is unsupported.
    """

    title = str(payload.get("title") or "").strip()
    if not title:
        raise ValueError("visualization.title must be a non-empty string.")
    chart_type = str(payload.get("chart_type") or DEFAULT_CHART_TYPE)
    if chart_type not in CHART_TYPES:
        raise ValueError(f"visualization.chart_type is not a supported value: {chart_type!r}.")

    chart_data = payload.get("chart_data")
    if chart_data is None:
        chart_data = "[]"
    elif not isinstance(chart_data, str):
        chart_data = json.dumps(chart_data)

    return ChartDefinition(
        title=title,
        description=str(payload.get("description") or ""),
        chart_type=chart_type,  # type: ignore[arg-type]
        sql_query=str(payload.get("sql_query") or ""),
        is_parameterized=_parse_bool(payload.get("is_parameterized")),
        chart_data=chart_data,
    )


def decode_parameters(payload: dict[str, Any] | None) -> ChartParameters:
    """Decode ChartParameters from a request or stored payload."""

    payload = payload or {}
    return ChartParameters(
        param_x=str(payload.get("param_x") or ""),
        param_y=str(payload.get("param_y") or ""),
        group_by=(str(payload["group_by"]) if payload.get("group_by") else None),
    )


def encode_workflow(workflow: SaveWorkflow) -> dict[str, Any]:
    """Encode the user-owned state of a workflow for session storage.

    Transient states (validating, persisting, ...) never survive a request,
    so only IDLE or PERSIST_SUCCEEDED is recorded.
    """

    state = WorkflowState.PERSIST_SUCCEEDED if workflow.awaiting_confirmation else WorkflowState.IDLE
    return {
        "state": state.value,
        "sources": {
            "checked": dict(workflow.catalog.checked),
            "previews": {name: list(rows) for name, rows in workflow.catalog.previews.items()},
        },
        "sql_query": workflow.sql_query,
        "result_set": workflow.result_set,
        "selection": {
            "x_axis": workflow.selection.x_axis,
            "y_axis": workflow.selection.y_axis,
            "group_by": workflow.selection.group_by,
        },
        "chart_type": workflow.chart_type,
        "title": workflow.title,
        "description": workflow.description,
        "title_error": workflow.title_error,
        "visualization_error": workflow.visualization_error,
        "save_error": workflow.save_error,
        "query_error": workflow.query_error,
        "query_succeeded_at": workflow.query_succeeded_at,
        "save_succeeded_at": workflow.save_succeeded_at,
        "last_record_id": workflow.last_record_id,
    }


def decode_workflow(
    payload: dict[str, Any] | None,
    *,
    backend: ChartBackend,
    clock: Callable[[], float] | None = None,
    banner_seconds: float = DEFAULT_BANNER_SECONDS,
) -> SaveWorkflow:
    """Rebuild a workflow from a payload produced by `encode_workflow`.

    Missing or malformed fields fall back to the values of a fresh workflow.
    """

    kwargs: dict[str, Any] = {"banner_seconds": banner_seconds}
    if clock is not None:
        kwargs["clock"] = clock
    workflow = SaveWorkflow(backend, **kwargs)
    if not payload:
        return workflow

    sources = cast(dict[str, Any], payload.get("sources") or {})
    checked = {str(k): _parse_bool(v) for k, v in dict(sources.get("checked") or {}).items()}
    previews = {
        str(name): tuple(dict(row) for row in rows)
        for name, rows in dict(sources.get("previews") or {}).items()
        if isinstance(rows, list) and checked.get(str(name))
    }
    workflow.catalog = SourceCatalog(checked=frozen_map(checked), previews=frozen_map(previews))

    workflow.sql_query = str(payload.get("sql_query") or "")
    result_set = payload.get("result_set")
    workflow.result_set = [dict(row) for row in result_set] if isinstance(result_set, list) else []

    selection = cast(dict[str, Any], payload.get("selection") or {})
    workflow.selection = AxisSelection(
        x_axis=str(selection.get("x_axis") or ""),
        y_axis=str(selection.get("y_axis") or ""),
        group_by=str(selection.get("group_by") or ""),
    )
    chart_type = str(payload.get("chart_type") or DEFAULT_CHART_TYPE)
    workflow.chart_type = chart_type if chart_type in CHART_TYPES else DEFAULT_CHART_TYPE  # type: ignore[assignment]
    workflow.title = str(payload.get("title") or "")
    workflow.description = str(payload.get("description") or "")

    workflow.title_error = _parse_bool(payload.get("title_error"))
    workflow.visualization_error = _parse_bool(payload.get("visualization_error"))
    workflow.save_error = _parse_bool(payload.get("save_error"))
    query_error = payload.get("query_error")
    workflow.query_error = str(query_error) if query_error else None
    workflow.query_succeeded_at = _parse_float(payload.get("query_succeeded_at"))
    workflow.save_succeeded_at = _parse_float(payload.get("save_succeeded_at"))
    workflow.last_record_id = _parse_int(payload.get("last_record_id"))

    if payload.get("state") == WorkflowState.PERSIST_SUCCEEDED.value:
        workflow.state = WorkflowState.PERSIST_SUCCEEDED
        workflow.history = [WorkflowState.PERSIST_SUCCEEDED]
    return workflow


def _parse_int(value: object) -> int | None:
    """Best-effort int parsing for stored payloads."""

    if value is None or value == "":
        return None
    try:
        return int(str(value))
    except ValueError:
        return None


def _parse_float(value: object) -> float | None:
    """Best-effort float parsing for stored payloads."""

    if value is None or value == "":
        return None
    try:
        return float(str(value))
    except ValueError:
        return None


def _parse_bool(value: object) -> bool:
    """Best-effort bool parsing for stored payloads."""

    if isinstance(value, bool):
        return value
    if value is None:
        return False
    normalized = str(value).strip().casefold()
    return normalized in {"1", "true", "yes", "on"}
