"""Production persistence and the admin-set invariant."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from callboard.core.config import settings
from callboard.core.exceptions import (
    ConcurrentModification,
    LastAdminViolation,
    NotAuthorized,
    ProductionNotFound,
    ProfileNotFound,
    StoreUnavailable,
)
from callboard.models import Production, ProductionAdmin
from callboard.stores.collections import COLLECTION_PRODUCTIONS
from callboard.stores.documents import DocumentStore, SortDirection
from callboard.stores.membership import MembershipAuthority
from callboard.stores.profiles import ProfileStore
from callboard.utils.audit import audit_log
from callboard.utils.monitoring import observe_admin_conflict
from callboard.utils.timestamps import to_storage_precision, utcnow

logger = logging.getLogger(__name__)

# Returns the new admin list, or None when no write is needed.
AdminMutation = Callable[[Production], Optional[List[ProductionAdmin]]]


class ProductionStore:
    """Create, list and administer productions.

    ``admins`` is only ever written through :meth:`_mutate_admins`, which
    serialises writers for one production inside this process and guards the
    write with a compare-and-swap on the document's ``version`` so that
    writers in other processes cannot cause lost updates either.
    """

    def __init__(
        self,
        documents: DocumentStore,
        profiles: ProfileStore,
        authority: Optional[MembershipAuthority] = None,
        *,
        max_attempts: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.documents = documents
        self.profiles = profiles
        self.authority = authority or MembershipAuthority(documents)
        self.max_attempts = max_attempts or settings.ADMIN_WRITE_MAX_ATTEMPTS
        self._clock = clock
        self._production_locks: Dict[str, asyncio.Lock] = {}
        self._lock_holders: Dict[str, int] = {}
        self._lock_guard = asyncio.Lock()

    @audit_log
    async def create(self, title: str, producer: str, acting_user_id: str) -> Production:
        """Create a production whose sole initial admin is its creator."""

        profile = await self.profiles.get_profile(acting_user_id)
        if profile is None:
            raise ProfileNotFound(acting_user_id)

        creator = ProductionAdmin(id=acting_user_id, name=profile.full_name)
        document = {
            "title": title,
            "producer": producer,
            "created_by": acting_user_id,
            "created_at": to_storage_precision(self._clock()),
            "admins": [creator.model_dump()],
            "admin_ids": [creator.id],
            "version": 1,
        }
        try:
            production_id = await self.documents.add(COLLECTION_PRODUCTIONS, document)
        except StoreUnavailable as exc:
            logger.error("Failed to create production %r for %s: %s", title, acting_user_id, exc)
            raise

        logger.info("Created production %s (%r) for user %s", production_id, title, acting_user_id)
        return Production.from_document({**document, "id": production_id})

    async def fetch_by_id(self, production_id: str) -> Optional[Production]:
        document = await self.documents.get(COLLECTION_PRODUCTIONS, production_id)
        if document is None:
            return None
        return Production.from_document(document)

    async def fetch_visible_to(self, user_id: str) -> List[Production]:
        """Return productions created or administered by ``user_id``, newest first."""

        created = await self.documents.query_ordered(
            COLLECTION_PRODUCTIONS,
            "created_at",
            SortDirection.DESCENDING,
            filters=[("created_by", "==", user_id)],
        )
        administered = await self.documents.query_ordered(
            COLLECTION_PRODUCTIONS,
            "created_at",
            SortDirection.DESCENDING,
            filters=[("admin_ids", "array_contains", user_id)],
        )

        merged: Dict[str, Production] = {}
        for document in [*created, *administered]:
            merged.setdefault(document["id"], Production.from_document(document))

        productions = sorted(merged.values(), key=lambda production: production.created_at, reverse=True)
        logger.debug("User %s can see %d productions", user_id, len(productions))
        return productions

    @audit_log
    async def add_admin(self, production_id: str, user_id: str, *, acting_user_id: str) -> Production:
        """Grant ``user_id`` admin rights. Adding an existing admin is a no-op."""

        await self.authority.require_admin(production_id, acting_user_id)

        profile = await self.profiles.get_profile(user_id)
        if profile is None:
            raise ProfileNotFound(user_id)

        def append(production: Production) -> Optional[List[ProductionAdmin]]:
            if production.has_admin(user_id):
                return None
            return [*production.admins, ProductionAdmin(id=user_id, name=profile.full_name)]

        production = await self._mutate_admins(production_id, acting_user_id, append)
        logger.info("User %s is an admin of production %s", user_id, production_id)
        return production

    @audit_log
    async def remove_admin(self, production_id: str, user_id: str, *, acting_user_id: str) -> Production:
        """Revoke ``user_id``'s admin rights, refusing to leave the production admin-less."""

        await self.authority.require_admin(production_id, acting_user_id)

        def discard(production: Production) -> Optional[List[ProductionAdmin]]:
            if len(production.admins) <= 1:
                raise LastAdminViolation(production_id, user_id)
            if not production.has_admin(user_id):
                return None
            return [admin for admin in production.admins if admin.id != user_id]

        production = await self._mutate_admins(production_id, acting_user_id, discard)
        logger.info("User %s is no longer an admin of production %s", user_id, production_id)
        return production

    async def is_admin(self, production_id: str, user_id: str) -> bool:
        return await self.authority.is_admin(production_id, user_id)

    async def _mutate_admins(self, production_id: str, acting_user_id: str, mutation: AdminMutation) -> Production:
        lock = await self._acquire_lock(production_id)
        try:
            async with lock:
                for attempt in range(1, self.max_attempts + 1):
                    document = await self.documents.get(COLLECTION_PRODUCTIONS, production_id)
                    if document is None:
                        raise ProductionNotFound(production_id)
                    production = Production.from_document(document)

                    # Re-check against the snapshot the conditional write is based on.
                    if not production.has_admin(acting_user_id):
                        raise NotAuthorized(
                            "Only production admins may make this change",
                            details={"production_id": production_id, "user_id": acting_user_id},
                        )

                    admins = mutation(production)
                    if admins is None:
                        return production

                    updated = production.model_copy(update={"admins": admins, "version": production.version + 1})
                    written = await self.documents.replace_if_version(
                        COLLECTION_PRODUCTIONS,
                        production_id,
                        updated.to_document(),
                        expected_version=production.version,
                    )
                    if written:
                        return updated

                    observe_admin_conflict()
                    logger.warning(
                        "Production %s changed during admin update (attempt %d/%d); retrying",
                        production_id,
                        attempt,
                        self.max_attempts,
                    )
                raise ConcurrentModification(production_id, self.max_attempts)
        finally:
            await self._release_lock(production_id, lock)

    async def _acquire_lock(self, production_id: str) -> asyncio.Lock:
        async with self._lock_guard:
            lock = self._production_locks.get(production_id)
            if lock is None:
                lock = asyncio.Lock()
                self._production_locks[production_id] = lock
            self._lock_holders[production_id] = self._lock_holders.get(production_id, 0) + 1
            return lock

    async def _release_lock(self, production_id: str, lock: asyncio.Lock) -> None:
        async with self._lock_guard:
            # Queued callers count as holders, including woken waiters not yet running.
            remaining = self._lock_holders.get(production_id, 1) - 1
            if remaining > 0:
                self._lock_holders[production_id] = remaining
                return
            self._lock_holders.pop(production_id, None)
            if self._production_locks.get(production_id) is lock:
                self._production_locks.pop(production_id, None)
