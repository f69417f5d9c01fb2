"""
Domain subpackage for want-to-dos.
"""

from .expiry import compute_expires_at
from .models import (
    SuggestionQuery,
    Timing,
    WantToDo,
    WantToDoDraft,
    WantToDoQuery,
    WantToDoStatus,
)

__all__ = [
    "SuggestionQuery",
    "Timing",
    "WantToDo",
    "WantToDoDraft",
    "WantToDoQuery",
    "WantToDoStatus",
    "compute_expires_at",
]
