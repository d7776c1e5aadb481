"""Goals module.

Provides functionality for:
- Creating goals with an ordered roadmap of steps
- Completing, reopening and removing steps
- Goal detail analytics and dashboards
"""

from .manager import GoalManager
from .schemas import GoalDashboard, GoalDetail, GoalResponse

__all__ = [
    "GoalManager",
    "GoalDashboard",
    "GoalDetail",
    "GoalResponse",
]
