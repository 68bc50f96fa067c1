from .production import Production, ProductionAdmin
from .profile import Identity, Profile, ProfileUpdate
from .roster import (
    DeletionPolicy,
    RosterEntry,
    RosterEntryInput,
    RosterEntryUpdate,
    RosterKind,
)

__all__ = [
    "DeletionPolicy",
    "Identity",
    "Production",
    "ProductionAdmin",
    "Profile",
    "ProfileUpdate",
    "RosterEntry",
    "RosterEntryInput",
    "RosterEntryUpdate",
    "RosterKind",
]
