import pytest

from callboard import NotAuthorized, build_services, connect
from callboard.core.config import Settings
from callboard.core.identity import create_access_token
from callboard.models import DeletionPolicy, RosterKind
from callboard.stores import InMemoryDocumentStore, MongoDocumentStore

CONFIG = Settings(SECRET_KEY="services-secret", ROSTER_DELETION_POLICY="SOFT", ADMIN_WRITE_MAX_ATTEMPTS=2)


class StubDatabaseManager:
    def __init__(self):
        self.initialized = False
        self.database = {}

    async def initialize(self):
        self.initialized = True


@pytest.mark.asyncio
async def test_sign_up_to_roster_flow():
    services = build_services(InMemoryDocumentStore(), config=CONFIG)

    token = create_access_token("u0", "ada@example.com", config=CONFIG)
    identity = services.identity.resolve(token)
    await services.profiles.register(identity, "Ada Lovelace")
    profile = await services.identity.profile_for(identity)

    production = await services.productions.create("Hamlet", "Globe", identity.user_id)
    assert production.admins[0].name == profile.full_name

    roster = services.roster(RosterKind.CAST)
    entry = await roster.add(
        production.id,
        {"name": "Ophelia", "production_role": "Ophelia", "email": "o@example.com"},
        acting_user_id=identity.user_id,
    )
    await roster.remove(production.id, entry.id, acting_user_id=identity.user_id)

    assert await roster.fetch_all(production.id) == []
    assert [p.id for p in await services.productions.fetch_visible_to(identity.user_id)] == [production.id]

    with pytest.raises(NotAuthorized):
        await services.creative.add(
            production.id,
            {"name": "Peter", "production_role": "Director", "email": "p@example.com"},
            acting_user_id="someone-else",
        )


def test_build_services_applies_configuration():
    services = build_services(InMemoryDocumentStore(), config=CONFIG)

    assert services.cast.deletion_policy is DeletionPolicy.SOFT
    assert services.creative.deletion_policy is DeletionPolicy.SOFT
    assert services.productions.max_attempts == 2
    assert services.roster(RosterKind.CREATIVE) is services.creative
    assert services.productions.authority is services.membership


@pytest.mark.asyncio
async def test_connect_initialises_mongo_backend():
    manager = StubDatabaseManager()

    services = await connect(manager, config=CONFIG)

    assert manager.initialized
    assert isinstance(services.documents, MongoDocumentStore)
    assert services.documents.manager is manager


@pytest.mark.asyncio
async def test_profile_updates_refresh_the_identity_cache():
    services = build_services(InMemoryDocumentStore(), config=CONFIG)
    identity = services.identity.resolve(create_access_token("u0", "ada@example.com", config=CONFIG))
    await services.profiles.register(identity, "Ada")
    assert (await services.identity.profile_for(identity)).full_name == "Ada"

    await services.profiles.update_profile("u0", {"full_name": "Ada Lovelace"}, acting_user_id="u0")

    assert (await services.identity.profile_for(identity)).full_name == "Ada Lovelace"
