"""
Domain subpackage for recruitments.
"""

from .models import (
    UPDATABLE_FIELDS,
    Application,
    ApplicationAction,
    ApplicationStatus,
    Group,
    GroupRole,
    Offer,
    OfferAction,
    OfferStatus,
    Recruitment,
    RecruitmentDraft,
    RecruitmentQuery,
    RecruitmentRef,
    RecruitmentStatus,
)

__all__ = [
    "UPDATABLE_FIELDS",
    "Application",
    "ApplicationAction",
    "ApplicationStatus",
    "Group",
    "GroupRole",
    "Offer",
    "OfferAction",
    "OfferStatus",
    "Recruitment",
    "RecruitmentDraft",
    "RecruitmentQuery",
    "RecruitmentRef",
    "RecruitmentStatus",
]
