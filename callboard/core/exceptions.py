"""Custom exception hierarchy for Callboard."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(eq=False)
class CallboardError(Exception):
    """Base class for store errors with structured payloads."""

    error_code: str
    message: str
    details: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        base = f"[{self.error_code}] {self.message}"
        if self.details:
            return f"{base} :: {self.details}"
        return base


class StoreUnavailable(CallboardError):
    """Raised when the document database cannot serve a request."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("store_unavailable", message, details)


class ProfileNotFound(CallboardError):
    """Raised when a referenced user has no profile document."""

    def __init__(self, user_id: str) -> None:
        super().__init__("profile_not_found", "User profile not found", {"user_id": user_id})


class ProductionNotFound(CallboardError):
    """Raised when a production id does not resolve to a document."""

    def __init__(self, production_id: str) -> None:
        super().__init__("production_not_found", "Production not found", {"production_id": production_id})


class EntryNotFound(CallboardError):
    """Raised when a roster entry does not exist (or was soft-deleted)."""

    def __init__(self, production_id: str, entry_id: str, kind: str) -> None:
        super().__init__(
            "entry_not_found",
            "Roster entry not found",
            {"production_id": production_id, "entry_id": entry_id, "kind": kind},
        )


class LastAdminViolation(CallboardError):
    """Raised when a removal would leave a production without admins."""

    def __init__(self, production_id: str, user_id: str) -> None:
        super().__init__(
            "last_admin_violation",
            "Cannot remove the last admin",
            {"production_id": production_id, "user_id": user_id},
        )


class NotAuthorized(CallboardError):
    """Raised when the acting user lacks the capability to mutate a resource."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("not_authorized", message, details)


class NotAuthenticated(CallboardError):
    """Raised when a session token cannot be resolved to an identity."""

    def __init__(self, message: str = "Invalid session token") -> None:
        super().__init__("not_authenticated", message)


class ConcurrentModification(CallboardError):
    """Raised when a conditional write keeps losing to concurrent writers."""

    def __init__(self, production_id: str, attempts: int) -> None:
        super().__init__(
            "concurrent_modification",
            "Production was modified concurrently; giving up",
            {"production_id": production_id, "attempts": attempts},
        )


__all__ = [
    "CallboardError",
    "ConcurrentModification",
    "EntryNotFound",
    "LastAdminViolation",
    "NotAuthenticated",
    "NotAuthorized",
    "ProductionNotFound",
    "ProfileNotFound",
    "StoreUnavailable",
]
