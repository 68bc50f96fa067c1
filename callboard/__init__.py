"""Membership and roster store for collaborative productions."""

from .core.exceptions import (
    CallboardError,
    ConcurrentModification,
    EntryNotFound,
    LastAdminViolation,
    NotAuthenticated,
    NotAuthorized,
    ProductionNotFound,
    ProfileNotFound,
    StoreUnavailable,
)
from .services import Services, build_services, connect

__all__ = [
    "CallboardError",
    "ConcurrentModification",
    "EntryNotFound",
    "LastAdminViolation",
    "NotAuthenticated",
    "NotAuthorized",
    "ProductionNotFound",
    "ProfileNotFound",
    "Services",
    "StoreUnavailable",
    "build_services",
    "connect",
]
