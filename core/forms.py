"""Forms for the visualization builder.

Each POST action of the builder page is validated by one small form before
it is applied to the session workflow.
"""

from __future__ import annotations

from collections.abc import Sequence

from django import forms

from analysis.dto import AxisSelection
from core.models import ChartTypeChoices


class SourceToggleForm(forms.Form):
    """Validate a source-table checkbox toggle."""

    table = forms.ChoiceField(required=True, choices=(), label="Table")

    def __init__(self, *args, tables: Sequence[str] = (), **kwargs) -> None:
        """Initialize table choices from the current catalog."""

        super().__init__(*args, **kwargs)
        self.fields["table"].choices = [(name, name) for name in tables]


class QueryForm(forms.Form):
    """Capture the SQL text to execute.

    Blank SQL is accepted here so the workflow can report it the same way it
    reports every other query error.
    """

    sql_query = forms.CharField(
        required=False,
        strip=False,
        label="SQL query",
        widget=forms.Textarea(attrs={"rows": 6}),
    )


class ChartBuilderForm(forms.Form):
    """Validate chart controls against the columns of the current result."""

    chart_type = forms.ChoiceField(
        required=True,
        choices=ChartTypeChoices.choices,
        label="Chart type",
    )
    x_axis = forms.ChoiceField(required=False, choices=(), label="X axis")
    y_axis = forms.ChoiceField(required=False, choices=(), label="Y axis")
    group_by = forms.ChoiceField(required=False, choices=(), label="Group by")
    title = forms.CharField(required=False, max_length=200, strip=False, label="Title")
    description = forms.CharField(
        required=False,
        strip=False,
        label="Description",
        widget=forms.Textarea(attrs={"rows": 3}),
    )

    def __init__(self, *args, columns: Sequence[str] = (), **kwargs) -> None:
        """Initialize axis choices from the available result columns."""

        super().__init__(*args, **kwargs)
        column_choices = [("", "---"), *((column, column) for column in columns)]
        for name in ("x_axis", "y_axis", "group_by"):
            self.fields[name].choices = column_choices

    def selection(self) -> AxisSelection:
        """Return the typed axis selection.

        Raises:
            ValueError: If the form is invalid.
        """

        if not self.is_valid():
            raise ValueError("ChartBuilderForm must be valid before building selections.")
        return AxisSelection(
            x_axis=str(self.cleaned_data.get("x_axis") or ""),
            y_axis=str(self.cleaned_data.get("y_axis") or ""),
            group_by=str(self.cleaned_data.get("group_by") or ""),
        )


class ConfirmNextForm(forms.Form):
    """Capture the post-save decision to keep or drop the current query."""

    keep_query = forms.TypedChoiceField(
        required=True,
        choices=(("yes", "Keep the same query result"), ("no", "Start over")),
        coerce=lambda value: value == "yes",
        label="Use the same query result?",
    )
