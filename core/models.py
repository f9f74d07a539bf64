"""Database models for the core app.

Saved charts are stored as two write-once records:

- `Visualization` holds the chart definition (title, type, SQL, chart data),
- `VisualizationParameter` holds the axis bindings used to build it.

Table names match the bookkeeping tables hidden from the source catalog.
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models


class ChartTypeChoices(models.TextChoices):
    """Chart types supported by the builder."""

    BAR = "bar", "Bar"
    LINE = "line", "Line"
    PIE = "pie", "Pie"
    SCATTER = "scatter", "Scatter"


class WriteOnceModel(models.Model):
    """Abstract model that rejects updates after creation."""

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        """Save a new row, enforcing immutability after creation.

        Raises:
            ValidationError: When attempting to update an existing row.
        """

        if self.pk is not None and not kwargs.get("force_insert", False):
            raise ValidationError(f"{type(self).__name__} rows are immutable once created.")
        super().save(*args, **kwargs)


class Visualization(WriteOnceModel):
    """A saved chart definition.

    Attributes:
        title: Required display title.
        description: Optional free-text description.
        chart_type: Chart type used when rendering.
        sql_query: SQL text that produced the chart data.
        is_parameterized: True when axis/grouping columns were bound.
        chart_data: JSON-encoded chart points captured at save time.
        created_at: Creation timestamp.
    """

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    chart_type = models.CharField(max_length=16, choices=ChartTypeChoices.choices, default=ChartTypeChoices.BAR)
    sql_query = models.TextField(blank=True, default="")
    is_parameterized = models.BooleanField(default=False)
    chart_data = models.TextField(default="[]")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "visualisasi"
        ordering = ("-created_at", "-id")

    def __str__(self) -> str:
        """Return a concise display string."""

        return f"Visualization({self.title})"


class VisualizationParameter(WriteOnceModel):
    """Axis bindings for a saved Visualization (one-to-one)."""

    visualization = models.OneToOneField(
        Visualization,
        on_delete=models.CASCADE,
        related_name="parameter",
    )
    param_x = models.CharField(max_length=200)
    param_y = models.CharField(max_length=200)
    group_by = models.CharField(max_length=200, null=True, blank=True)

    class Meta:
        db_table = "parameter_visualisasi"

    def __str__(self) -> str:
        """Return a concise display string."""

        return f"VisualizationParameter(x={self.param_x}, y={self.param_y}, group_by={self.group_by})"
