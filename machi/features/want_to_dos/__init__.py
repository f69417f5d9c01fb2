"""
Want-to-do feature package.
"""

from .api.router import router as want_to_dos_router  # noqa: F401
from .services.want_to_do_service import WantToDoService  # noqa: F401
