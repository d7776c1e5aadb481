"""Track goals, projects and reading with derived progress, status and analytics."""

__version__ = "0.1.0"
