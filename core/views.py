"""Views for the visualization builder and the visualization API."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from django.conf import settings
from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.http import HttpRequest, HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.views.decorators.http import require_http_methods

from analysis.dto import CellValue, ResultRow
from core.charting.errors import ChartWorkflowError, PersistenceError
from core.charting.snapshot_codec import (
    decode_definition,
    decode_parameters,
    decode_workflow,
    encode_workflow,
)
from core.charting.workflow import SaveWorkflow
from core.forms import ChartBuilderForm, ConfirmNextForm, QueryForm, SourceToggleForm
from core.models import Visualization
from core.services import DjangoChartBackend, create_visualization

logger = logging.getLogger(__name__)

WORKFLOW_SESSION_KEY = "chart_studio_workflow"


def _load_workflow(request: HttpRequest) -> SaveWorkflow:
    """Return the session workflow, loading the source catalog on first use."""

    workflow = decode_workflow(
        request.session.get(WORKFLOW_SESSION_KEY),
        backend=DjangoChartBackend(),
        banner_seconds=float(settings.CHART_STUDIO_BANNER_SECONDS),
    )
    if not workflow.catalog.names:
        workflow.load_sources()
    return workflow


def _store_workflow(request: HttpRequest, workflow: SaveWorkflow) -> None:
    """Persist the workflow's user state into the session."""

    request.session[WORKFLOW_SESSION_KEY] = encode_workflow(workflow)
    request.session.modified = True


@login_required
def visualization_builder(request: HttpRequest) -> HttpResponse:
    """Render the visualization builder and apply its POST actions.

    POST actions:
        toggle_source: Check/uncheck a source table and load its preview.
        run_query: Execute the SQL text.
        update_chart: Apply chart type, axes, title and description.
        save_chart: Apply chart controls, then validate and persist.
        confirm_next: Resolve the keep-query/start-over decision after a save.
    """

    workflow = _load_workflow(request)

    if request.method == "POST":
        action = (request.POST.get("action") or "").strip()
        try:
            _apply_action(request, workflow, action=action)
        except ChartWorkflowError as exc:
            messages.error(request, exc.message)
        _store_workflow(request, workflow)
        return redirect("core:visualization_builder")

    _store_workflow(request, workflow)
    snapshot = workflow.snapshot()
    chart_form = ChartBuilderForm(
        columns=snapshot.available_columns,
        initial={
            "chart_type": workflow.chart_type,
            "x_axis": workflow.selection.x_axis,
            "y_axis": workflow.selection.y_axis,
            "group_by": workflow.selection.group_by,
            "title": workflow.title,
            "description": workflow.description,
        },
    )
    sources = [
        {
            "name": name,
            "checked": workflow.catalog.is_checked(name),
            "columns": workflow.catalog.preview_columns(name),
            "rows": _table_cells(workflow.catalog.previews.get(name, ()), workflow.catalog.preview_columns(name)),
        }
        for name in workflow.catalog.names
    ]
    return render(
        request,
        "core/visualization_builder.html",
        {
            "workflow": workflow,
            "snapshot": snapshot,
            "sources": sources,
            "query_form": QueryForm(initial={"sql_query": workflow.sql_query}),
            "chart_form": chart_form,
            "confirm_form": ConfirmNextForm(),
            "result_columns": snapshot.available_columns,
            "result_rows": _table_cells(workflow.result_set, snapshot.available_columns),
            "chart_data": list(snapshot.chart_data),
        },
    )


def _table_cells(rows: Sequence[ResultRow], columns: Sequence[str]) -> list[list[CellValue]]:
    """Return row cells ordered by column; absent keys read as None."""

    return [[row.get(column) for column in columns] for row in rows]


def _apply_action(request: HttpRequest, workflow: SaveWorkflow, *, action: str) -> None:
    """Apply one builder POST action to the workflow.

    Raises:
        ChartWorkflowError: When the workflow refuses the action.
    """

    if action == "confirm_next":
        confirm_form = ConfirmNextForm(request.POST)
        if not confirm_form.is_valid():
            messages.error(request, "Choose whether to keep the current query result.")
            return
        workflow.confirm(keep_query=bool(confirm_form.cleaned_data["keep_query"]))
        return

    if action == "toggle_source":
        toggle_form = SourceToggleForm(request.POST, tables=workflow.catalog.names)
        if not toggle_form.is_valid():
            messages.error(request, "Unknown source table.")
            return
        workflow.toggle_source(toggle_form.cleaned_data["table"])
        return

    if action == "run_query":
        query_form = QueryForm(request.POST)
        query_form.is_valid()
        workflow.run_query(query_form.cleaned_data.get("sql_query") or "")
        return

    if action in ("update_chart", "save_chart"):
        workflow.ensure_accepting("change the chart")
        chart_form = ChartBuilderForm(request.POST, columns=workflow.available_columns)
        if not chart_form.is_valid():
            messages.error(request, "Invalid chart parameters.")
            return
        selection = chart_form.selection()
        workflow.select_axes(x_axis=selection.x_axis, y_axis=selection.y_axis, group_by=selection.group_by)
        workflow.set_chart_type(chart_form.cleaned_data["chart_type"])
        workflow.set_title(chart_form.cleaned_data.get("title") or "")
        workflow.set_description(chart_form.cleaned_data.get("description") or "")
        if action == "update_chart":
            return

        outcome = workflow.request_save()
        if outcome is None:
            return
        if outcome.ok:
            messages.success(request, "Visualization saved.")
        else:
            messages.error(request, "Could not save the visualization.")
        return

    messages.error(request, "Unknown action.")


@login_required
@require_http_methods(["GET", "POST"])
def visualizations_api(request: HttpRequest) -> JsonResponse:
    """List saved visualizations (GET) or store a new one (POST).

    The POST body is `{"visualization": {...}, "parameter": {...}}`; both
    records are written in one transaction.
    """

    if request.method == "GET":
        items = Visualization.objects.select_related("parameter").all()
        return JsonResponse({"results": [_visualization_json(item) for item in items]})

    try:
        body = json.loads(request.body or b"{}")
    except json.JSONDecodeError:
        return JsonResponse({"error": "Request body must be valid JSON."}, status=400)
    if not isinstance(body, dict) or not isinstance(body.get("visualization"), dict):
        return JsonResponse({"error": "Request body must contain a visualization object."}, status=400)

    try:
        definition = decode_definition(body["visualization"])
        parameters = decode_parameters(body.get("parameter") if isinstance(body.get("parameter"), dict) else None)
    except ValueError as exc:
        return JsonResponse({"error": str(exc)}, status=400)

    try:
        visualization = create_visualization(definition, parameters)
    except PersistenceError as exc:
        logger.exception("Error saving visualization %r via API", definition.title)
        return JsonResponse({"error": exc.message}, status=500)

    return JsonResponse({"id": visualization.pk, "message": "Visualization saved."}, status=201)


@login_required
@require_http_methods(["GET"])
def visualization_detail_api(request: HttpRequest, pk: int) -> JsonResponse:
    """Return one saved visualization with its decoded chart data."""

    visualization = get_object_or_404(Visualization.objects.select_related("parameter"), pk=pk)
    payload = _visualization_json(visualization)
    try:
        payload["chart_data"] = json.loads(visualization.chart_data or "[]")
    except json.JSONDecodeError:
        payload["chart_data"] = []
    return JsonResponse(payload)


def _visualization_json(visualization: Visualization) -> dict[str, Any]:
    """Serialize a Visualization (without chart data) for API responses."""

    parameter = getattr(visualization, "parameter", None)
    return {
        "id": visualization.pk,
        "title": visualization.title,
        "description": visualization.description,
        "chart_type": visualization.chart_type,
        "sql_query": visualization.sql_query,
        "is_parameterized": visualization.is_parameterized,
        "created_at": visualization.created_at.isoformat(),
        "parameter": (
            {
                "param_x": parameter.param_x,
                "param_y": parameter.param_y,
                "group_by": parameter.group_by,
            }
            if parameter is not None
            else None
        ),
    }
