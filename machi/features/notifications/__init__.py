"""
Notification events and delivery.
"""

from .dispatcher import NotificationDispatcher  # noqa: F401
from .events import DomainEvent  # noqa: F401
from .service import NotificationService  # noqa: F401
