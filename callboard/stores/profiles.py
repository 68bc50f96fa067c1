"""Profile persistence: one document per identity-provider user id."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from callboard.core.exceptions import NotAuthorized, ProfileNotFound, StoreUnavailable
from callboard.models import Identity, Profile, ProfileUpdate
from callboard.stores.collections import COLLECTION_PROFILES
from callboard.stores.documents import DocumentStore, WriteMode
from callboard.utils.audit import audit_log
from callboard.utils.timestamps import to_storage_precision, utcnow
from callboard.utils.validators import require_identifier, require_non_empty

logger = logging.getLogger(__name__)


class ProfileStore:
    """Create and fetch user profiles."""

    def __init__(self, documents: DocumentStore, clock: Callable[[], datetime] = utcnow) -> None:
        self.documents = documents
        self._clock = clock
        self._listeners: List[Callable[[str], None]] = []

    def subscribe(self, listener: Callable[[str], None]) -> None:
        """Call ``listener(user_id)`` after every change to a stored profile."""

        self._listeners.append(listener)

    async def set_profile(self, user_id: str, profile: Profile) -> None:
        """Write ``profile`` for ``user_id``, replacing whatever was stored before."""

        user_id = require_identifier(user_id, "user_id")
        try:
            await self.documents.put(COLLECTION_PROFILES, user_id, profile.to_document(), WriteMode.REPLACE)
        except StoreUnavailable as exc:
            logger.error("Failed to set profile for %s: %s", user_id, exc)
            raise
        logger.info("Stored profile for user %s", user_id)
        self._notify(user_id)

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        user_id = require_identifier(user_id, "user_id")
        try:
            document = await self.documents.get(COLLECTION_PROFILES, user_id)
        except StoreUnavailable as exc:
            logger.error("Failed to fetch profile for %s: %s", user_id, exc)
            raise
        if document is None:
            logger.debug("No profile stored for user %s", user_id)
            return None
        return Profile.from_document(document)

    async def register(self, identity: Identity, full_name: str, avatar_url: Optional[str] = None) -> Profile:
        """Create the profile of a freshly signed-up user."""

        profile = Profile(
            user_id=identity.user_id,
            email=identity.email,
            full_name=require_non_empty(full_name),
            created_at=to_storage_precision(self._clock()),
            avatar_url=avatar_url,
        )
        await self.set_profile(identity.user_id, profile)
        return profile

    @audit_log
    async def update_profile(self, user_id: str, changes: Dict[str, Any], *, acting_user_id: str) -> Profile:
        """Merge ``changes`` into the profile. Only its owner may do this."""

        if acting_user_id != user_id:
            raise NotAuthorized("Profiles can only be changed by their owner", details={"user_id": user_id})

        fields = ProfileUpdate(**changes).model_dump(exclude_unset=True)
        user_id = require_identifier(user_id, "user_id")
        if not await self.documents.update(COLLECTION_PROFILES, user_id, fields):
            raise ProfileNotFound(user_id)
        self._notify(user_id)

        profile = await self.get_profile(user_id)
        if profile is None:
            raise ProfileNotFound(user_id)
        logger.info("Updated profile fields %s for user %s", sorted(fields), user_id)
        return profile

    def _notify(self, user_id: str) -> None:
        for listener in self._listeners:
            listener(user_id)
