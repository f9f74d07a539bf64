"""Admin registrations for the core app."""

from __future__ import annotations

from django.contrib import admin

from core.models import Visualization, VisualizationParameter


class VisualizationParameterInline(admin.StackedInline):
    """Read-only inline showing a visualization's axis bindings."""

    model = VisualizationParameter
    can_delete = False
    extra = 0
    readonly_fields = ("param_x", "param_y", "group_by")

    def has_add_permission(self, request, obj=None) -> bool:  # type: ignore[override]
        """Parameters are only created alongside their visualization."""

        return False


@admin.register(Visualization)
class VisualizationAdmin(admin.ModelAdmin):
    """Admin configuration for saved visualizations.

    Visualizations are write-once, so every field is read-only.
    """

    list_display = ("title", "chart_type", "is_parameterized", "created_at")
    list_filter = ("chart_type", "is_parameterized")
    search_fields = ("title", "description", "sql_query")
    readonly_fields = (
        "title",
        "description",
        "chart_type",
        "sql_query",
        "is_parameterized",
        "chart_data",
        "created_at",
    )
    inlines = (VisualizationParameterInline,)

    def has_add_permission(self, request) -> bool:  # type: ignore[override]
        """Visualizations are created from the builder or the API only."""

        return False
