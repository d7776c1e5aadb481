"""Reports module for dashboards across goals, projects and reading."""

from .manager import ReportManager
from .schemas import HomeDashboard

__all__ = [
    "ReportManager",
    "HomeDashboard",
]
