"""Create the saved visualization tables."""

from __future__ import annotations

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    """Add Visualization and VisualizationParameter."""

    initial = True

    dependencies: list[tuple[str, str]] = []

    operations = [
        migrations.CreateModel(
            name="Visualization",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "chart_type",
                    models.CharField(
                        choices=[("bar", "Bar"), ("line", "Line"), ("pie", "Pie"), ("scatter", "Scatter")],
                        default="bar",
                        max_length=16,
                    ),
                ),
                ("sql_query", models.TextField(blank=True, default="")),
                ("is_parameterized", models.BooleanField(default=False)),
                ("chart_data", models.TextField(default="[]")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "visualisasi",
                "ordering": ("-created_at", "-id"),
            },
        ),
        migrations.CreateModel(
            name="VisualizationParameter",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("param_x", models.CharField(max_length=200)),
                ("param_y", models.CharField(max_length=200)),
                ("group_by", models.CharField(blank=True, max_length=200, null=True)),
                (
                    "visualization",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="parameter",
                        to="core.visualization",
                    ),
                ),
            ],
            options={
                "db_table": "parameter_visualisasi",
            },
        ),
    ]
