"""
Nearby search feature package.

Centre/radius and viewport search over open recruitments and active
want-to-dos, with the geometry helpers it relies on.
"""

from .api.router import router as nearby_router  # noqa: F401
from .domain.models import EntityType, NearbyItem, NearbySearchRequest  # noqa: F401
from .services.search_service import NearbySearchService  # noqa: F401
