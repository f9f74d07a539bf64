"""Chart-building workflow for the visualization builder.

This package holds the source catalog, save-time validation, the save
workflow state machine, and the session payload codec. It does not import
the ORM; database access goes through a `ChartBackend` collaborator.
"""
