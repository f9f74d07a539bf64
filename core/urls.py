"""URL configuration for core views."""

from __future__ import annotations

from django.urls import path

from core import views

app_name = "core"

urlpatterns = [
    path("", views.visualization_builder, name="visualization_builder"),
    path("api/visualizations/", views.visualizations_api, name="visualizations_api"),
    path("api/visualizations/<int:pk>/", views.visualization_detail_api, name="visualization_detail_api"),
]
