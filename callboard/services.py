"""Wire every store on top of a single document store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from callboard.core.config import Settings, settings as default_settings
from callboard.core.database import DatabaseManager, database_manager
from callboard.core.identity import IdentityResolver
from callboard.models import DeletionPolicy, RosterKind
from callboard.stores import (
    CastStore,
    CreativeStore,
    DocumentStore,
    MembershipAuthority,
    MongoDocumentStore,
    ProductionStore,
    ProfileStore,
    RosterStore,
)

logger = logging.getLogger(__name__)


@dataclass
class Services:
    documents: DocumentStore
    profiles: ProfileStore
    identity: IdentityResolver
    membership: MembershipAuthority
    productions: ProductionStore
    cast: CastStore
    creative: CreativeStore

    def roster(self, kind: RosterKind) -> RosterStore:
        return self.cast if kind is RosterKind.CAST else self.creative


def build_services(documents: Optional[DocumentStore] = None, config: Optional[Settings] = None) -> Services:
    """Assemble the stores. Without ``documents`` the shared MongoDB manager is used."""

    config = config or default_settings
    documents = documents or MongoDocumentStore(database_manager)
    policy = DeletionPolicy(config.ROSTER_DELETION_POLICY)

    profiles = ProfileStore(documents)
    membership = MembershipAuthority(documents)
    services = Services(
        documents=documents,
        profiles=profiles,
        identity=IdentityResolver(profiles, config=config),
        membership=membership,
        productions=ProductionStore(
            documents,
            profiles,
            membership,
            max_attempts=config.ADMIN_WRITE_MAX_ATTEMPTS,
        ),
        cast=CastStore(documents, membership, deletion_policy=policy),
        creative=CreativeStore(documents, membership, deletion_policy=policy),
    )
    profiles.subscribe(services.identity.invalidate)
    logger.info("Callboard services ready (%s, %s roster deletes)", documents.__class__.__name__, policy.value)
    return services


async def connect(manager: Optional[DatabaseManager] = None, config: Optional[Settings] = None) -> Services:
    """Initialise the MongoDB connection and return services bound to it."""

    manager = manager or database_manager
    await manager.initialize()
    return build_services(MongoDocumentStore(manager), config=config)
