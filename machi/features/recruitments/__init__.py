"""
Recruitment feature package.

Keeps the lifecycle state machine, its persistence and its HTTP routes
co-located.
"""

from .api.router import router as recruitments_router  # noqa: F401
from .services.lifecycle_service import RecruitmentLifecycleService  # noqa: F401
