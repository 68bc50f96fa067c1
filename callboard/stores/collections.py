"""Collection paths (schema-in-code).

The document database has no DDL: collections appear on first write. These
names are the single source of truth for where each record lives.
"""

from __future__ import annotations

from callboard.models import RosterKind

COLLECTION_PROFILES = "profiles"
COLLECTION_PRODUCTIONS = "productions"


def roster_path(production_id: str, kind: RosterKind) -> str:
    return f"{COLLECTION_PRODUCTIONS}/{production_id}/{kind.collection}"
