"""Admin membership checks shared by every mutating store operation."""

from __future__ import annotations

import logging

from callboard.core.exceptions import NotAuthorized, ProductionNotFound
from callboard.models import Production
from callboard.stores.collections import COLLECTION_PRODUCTIONS
from callboard.stores.documents import DocumentStore

logger = logging.getLogger(__name__)


class MembershipAuthority:
    """Derive whether a user may mutate a production and its rosters."""

    def __init__(self, documents: DocumentStore) -> None:
        self.documents = documents

    async def is_admin(self, production_id: str, user_id: str) -> bool:
        document = await self.documents.get(COLLECTION_PRODUCTIONS, production_id)
        if document is None:
            return False
        return Production.from_document(document).has_admin(user_id)

    async def require_admin(self, production_id: str, user_id: str) -> None:
        """Raise unless ``user_id`` currently administers ``production_id``.

        Raises:
            ProductionNotFound: If the production does not exist.
            NotAuthorized: If the user is not one of its admins.
        """

        document = await self.documents.get(COLLECTION_PRODUCTIONS, production_id)
        if document is None:
            raise ProductionNotFound(production_id)
        if Production.from_document(document).has_admin(user_id):
            return
        logger.warning("User %s denied mutation of production %s", user_id, production_id)
        raise NotAuthorized(
            "Only production admins may make this change",
            details={"production_id": production_id, "user_id": user_id},
        )
