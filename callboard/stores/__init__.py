from .documents import (
    DocumentStore,
    InMemoryDocumentStore,
    MongoDocumentStore,
    SortDirection,
    WriteMode,
)
from .membership import MembershipAuthority
from .productions import ProductionStore
from .profiles import ProfileStore
from .rosters import CastStore, CreativeStore, RosterStore

__all__ = [
    "CastStore",
    "CreativeStore",
    "DocumentStore",
    "InMemoryDocumentStore",
    "MembershipAuthority",
    "MongoDocumentStore",
    "ProductionStore",
    "ProfileStore",
    "RosterStore",
    "SortDirection",
    "WriteMode",
]
