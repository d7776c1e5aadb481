"""Reading module.

Provides functionality for:
- Tracking books, articles and other reading by page
- Logging reading sessions
- Reading pace, streaks and heatmaps
"""

from .manager import ReadingManager
from .schemas import (
    ReadingAnalytics,
    ReadingDashboard,
    ReadingDetail,
    ReadingHeatmap,
    ReadingItemResponse,
)

__all__ = [
    "ReadingManager",
    "ReadingAnalytics",
    "ReadingDashboard",
    "ReadingDetail",
    "ReadingHeatmap",
    "ReadingItemResponse",
]
