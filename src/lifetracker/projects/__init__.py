"""Projects module.

Provides functionality for:
- Creating projects with ordered milestones
- Completing, reordering and removing milestones with effort tracking
- Archiving and duplicating projects
- Project detail analytics and dashboards
"""

from .manager import ProjectManager
from .schemas import ProjectDashboard, ProjectDetail, ProjectHours, ProjectResponse

__all__ = [
    "ProjectManager",
    "ProjectDashboard",
    "ProjectDetail",
    "ProjectHours",
    "ProjectResponse",
]
