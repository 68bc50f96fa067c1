from collections import defaultdict
from datetime import datetime, timezone

import pytest
from prometheus_client import REGISTRY
from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ServerSelectionTimeoutError

from callboard.core.database import DatabaseManager
from callboard.core.exceptions import StoreUnavailable
from callboard.stores.documents import MongoDocumentStore, SortDirection, WriteMode


class StubResult:
    def __init__(self, matched_count: int) -> None:
        self.matched_count = matched_count


class StubCursor:
    def __init__(self, documents):
        self.documents = documents
        self.sort_args = None

    def sort(self, keys):
        self.sort_args = keys
        return self

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for document in self.documents:
            yield document


class StubCollection:
    """Records motor calls and replays canned results."""

    def __init__(self) -> None:
        self.calls = []
        self.documents = []
        self.matched_count = 1
        self.error = None
        self.cursor = None

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if self.error is not None:
            raise self.error

    async def find_one(self, query):
        self._record("find_one", query)
        return self.documents[0] if self.documents else None

    async def insert_one(self, document):
        self._record("insert_one", document)

    async def replace_one(self, query, document, upsert=False):
        self._record("replace_one", query, document, upsert=upsert)
        return StubResult(self.matched_count)

    async def update_one(self, query, update, upsert=False):
        self._record("update_one", query, update, upsert=upsert)
        return StubResult(self.matched_count)

    async def count_documents(self, query, limit=0):
        self._record("count_documents", query, limit=limit)
        return self.matched_count

    async def delete_one(self, query):
        self._record("delete_one", query)

    def find(self, query):
        self._record("find", query)
        self.cursor = StubCursor(self.documents)
        return self.cursor


@pytest.fixture()
def database():
    return defaultdict(StubCollection)


@pytest.fixture()
def store(database):
    return MongoDocumentStore(database=database)


@pytest.mark.asyncio
async def test_get_scopes_subcollections_by_parent(store, database):
    database["cast_members"].documents = [{"_id": "e1", "_parent": "productions/p1", "name": "Hamlet"}]

    document = await store.get("productions/p1/cast_members", "e1")

    assert document == {"id": "e1", "name": "Hamlet"}
    assert database["cast_members"].calls == [("find_one", ({"_id": "e1", "_parent": "productions/p1"},), {})]


@pytest.mark.asyncio
async def test_add_uses_generated_id_and_strips_caller_id(store, database):
    doc_id = await store.add("productions", {"id": "ignored", "title": "Hamlet"})

    name, args, _ = database["productions"].calls[0]
    assert name == "insert_one"
    assert args[0] == {"_id": doc_id, "title": "Hamlet"}


@pytest.mark.asyncio
async def test_put_modes_map_to_replace_and_set(store, database):
    await store.put("profiles", "u1", {"full_name": "Ada"})
    await store.put("profiles", "u1", {"email": "ada@example.com"}, WriteMode.MERGE)

    calls = database["profiles"].calls
    assert calls[0] == ("replace_one", ({"_id": "u1"}, {"full_name": "Ada"}), {"upsert": True})
    assert calls[1] == ("update_one", ({"_id": "u1"}, {"$set": {"email": "ada@example.com"}}), {"upsert": True})


@pytest.mark.asyncio
async def test_update_reports_missing_documents(store, database):
    collection = database["creative_members"]
    collection.matched_count = 0

    assert await store.update("productions/p1/creative_members", "e9", {"name": "Director"}) is False
    _, args, kwargs = collection.calls[0]
    assert args == ({"_id": "e9", "_parent": "productions/p1"}, {"$set": {"name": "Director"}})
    assert kwargs == {"upsert": False}


@pytest.mark.asyncio
async def test_replace_if_version_conditions_on_version(store, database):
    collection = database["productions"]
    collection.matched_count = 0

    written = await store.replace_if_version("productions", "p1", {"title": "Hamlet", "version": 3}, expected_version=2)

    assert written is False
    _, args, _ = collection.calls[0]
    assert args[0] == {"_id": "p1", "version": 2}
    assert args[1] == {"title": "Hamlet", "version": 3}


@pytest.mark.asyncio
async def test_query_ordered_translates_filters_and_direction(store, database):
    collection = database["productions"]
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    collection.documents = [{"_id": "p1", "created_at": created, "admin_ids": ["u1"]}]

    results = await store.query_ordered(
        "productions", "created_at", SortDirection.DESCENDING, filters=[("admin_ids", "array_contains", "u1")]
    )

    assert results == [{"id": "p1", "created_at": created, "admin_ids": ["u1"]}]
    assert collection.calls[0] == ("find", ({"created_at": {"$exists": True}, "admin_ids": "u1"},), {})
    assert collection.cursor.sort_args == [("created_at", DESCENDING), ("_id", DESCENDING)]


@pytest.mark.asyncio
async def test_backend_failures_surface_as_store_unavailable(store, database):
    database["profiles"].error = ServerSelectionTimeoutError("no servers")
    before = REGISTRY.get_sample_value(
        "callboard_store_operations_total", {"operation": "get", "outcome": "error"}
    ) or 0.0

    with pytest.raises(StoreUnavailable) as excinfo:
        await store.get("profiles", "u1")

    assert excinfo.value.details == {"operation": "get", "path": "profiles"}
    after = REGISTRY.get_sample_value("callboard_store_operations_total", {"operation": "get", "outcome": "error"})
    assert after == before + 1


@pytest.mark.asyncio
async def test_uninitialised_manager_is_unavailable():
    store = MongoDocumentStore(DatabaseManager())

    with pytest.raises(StoreUnavailable):
        await store.get("productions", "p1")


@pytest.mark.asyncio
async def test_add_ids_are_object_ids_in_creation_order(store, database):
    first = await store.add("productions/p1/cast_members", {"name": "Alpha"})
    second = await store.add("productions/p1/cast_members", {"name": "Bravo"})

    assert ObjectId.is_valid(first)
    assert first < second
    _, args, _ = database["cast_members"].calls[1]
    assert args[0] == {"name": "Bravo", "_parent": "productions/p1", "_id": second}


@pytest.mark.asyncio
async def test_query_ordered_breaks_ties_on_id_in_the_same_direction(store, database):
    await store.query_ordered("productions/p1/cast_members", "created_at")

    cursor = database["cast_members"].cursor
    assert cursor.sort_args == [("created_at", ASCENDING), ("_id", ASCENDING)]


@pytest.mark.asyncio
async def test_replace_if_version_treats_unversioned_documents_as_first_version(store, database):
    await store.replace_if_version("productions", "p1", {"title": "Hamlet", "version": 2}, expected_version=1)

    _, args, _ = database["productions"].calls[0]
    assert args[0] == {"_id": "p1", "$or": [{"version": 1}, {"version": {"$exists": False}}]}
