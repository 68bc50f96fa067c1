"""Cast and creative rosters stored as child collections of a production."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from callboard.core.config import settings
from callboard.core.exceptions import EntryNotFound, StoreUnavailable
from callboard.models import DeletionPolicy, RosterEntry, RosterEntryInput, RosterEntryUpdate, RosterKind
from callboard.stores.collections import roster_path
from callboard.stores.documents import DocumentStore, SortDirection
from callboard.stores.membership import MembershipAuthority
from callboard.utils.audit import audit_log
from callboard.utils.timestamps import to_storage_precision, utcnow
from callboard.utils.validators import require_identifier

logger = logging.getLogger(__name__)


class RosterStore:
    """Ordered roster of one kind (cast or creative) for any production.

    The deletion policy is fixed per instance: ``HARD`` removes documents,
    ``SOFT`` stamps ``deleted_at`` and every read skips stamped entries.
    """

    def __init__(
        self,
        kind: RosterKind,
        documents: DocumentStore,
        authority: Optional[MembershipAuthority] = None,
        *,
        deletion_policy: Optional[DeletionPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.kind = kind
        self.documents = documents
        self.authority = authority or MembershipAuthority(documents)
        self.deletion_policy = deletion_policy or DeletionPolicy(settings.ROSTER_DELETION_POLICY)
        self._clock = clock

    @audit_log
    async def add(
        self,
        production_id: str,
        entry: Union[RosterEntryInput, Mapping[str, Any]],
        *,
        acting_user_id: str,
    ) -> RosterEntry:
        await self.authority.require_admin(production_id, acting_user_id)

        payload = entry if isinstance(entry, RosterEntryInput) else RosterEntryInput(**entry)
        document = {**payload.model_dump(), "created_at": to_storage_precision(self._clock())}
        path = self._path(production_id)
        try:
            entry_id = await self.documents.add(path, document)
        except StoreUnavailable as exc:
            logger.error("Failed to add %s member to production %s: %s", self.kind.value, production_id, exc)
            raise

        logger.info("Added %s member %s to production %s", self.kind.value, entry_id, production_id)
        return RosterEntry(id=entry_id, **document)

    async def fetch_all(self, production_id: str) -> List[RosterEntry]:
        """Return live entries, newest first. Unknown productions have no entries."""

        documents = await self.documents.query_ordered(
            self._path(production_id), "created_at", SortDirection.DESCENDING
        )
        entries = [RosterEntry.from_document(document) for document in documents]
        return [entry for entry in entries if entry.deleted_at is None]

    async def fetch_by_id(self, production_id: str, entry_id: str) -> Optional[RosterEntry]:
        document = await self.documents.get(self._path(production_id), require_identifier(entry_id, "entry_id"))
        if document is None:
            return None
        entry = RosterEntry.from_document(document)
        if entry.deleted_at is not None:
            return None
        return entry

    @audit_log
    async def update(
        self,
        production_id: str,
        entry_id: str,
        data: Dict[str, Any],
        *,
        acting_user_id: str,
    ) -> RosterEntry:
        """Merge ``data`` into an existing entry; missing entries are never materialised."""

        await self.authority.require_admin(production_id, acting_user_id)

        fields = RosterEntryUpdate(**data).model_dump(exclude_unset=True)
        if await self.fetch_by_id(production_id, entry_id) is None:
            raise EntryNotFound(production_id, entry_id, self.kind.value)
        if not await self.documents.update(self._path(production_id), entry_id, fields):
            raise EntryNotFound(production_id, entry_id, self.kind.value)

        entry = await self.fetch_by_id(production_id, entry_id)
        if entry is None:
            raise EntryNotFound(production_id, entry_id, self.kind.value)
        logger.info("Updated %s member %s of production %s", self.kind.value, entry_id, production_id)
        return entry

    @audit_log
    async def remove(self, production_id: str, entry_id: str, *, acting_user_id: str) -> None:
        await self.authority.require_admin(production_id, acting_user_id)

        path = self._path(production_id)
        entry_id = require_identifier(entry_id, "entry_id")
        if self.deletion_policy is DeletionPolicy.HARD:
            await self.documents.delete(path, entry_id)
        else:
            if await self.fetch_by_id(production_id, entry_id) is None:
                raise EntryNotFound(production_id, entry_id, self.kind.value)
            await self.documents.update(path, entry_id, {"deleted_at": to_storage_precision(self._clock())})

        logger.info(
            "Removed %s member %s from production %s (%s delete)",
            self.kind.value,
            entry_id,
            production_id,
            self.deletion_policy.value,
        )

    def _path(self, production_id: str) -> str:
        return roster_path(require_identifier(production_id, "production_id"), self.kind)


class CastStore(RosterStore):
    def __init__(self, documents: DocumentStore, authority: Optional[MembershipAuthority] = None, **kwargs: Any) -> None:
        super().__init__(RosterKind.CAST, documents, authority, **kwargs)


class CreativeStore(RosterStore):
    def __init__(self, documents: DocumentStore, authority: Optional[MembershipAuthority] = None, **kwargs: Any) -> None:
        super().__init__(RosterKind.CREATIVE, documents, authority, **kwargs)
