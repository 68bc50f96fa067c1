"""Document store adapters.

The stores above this layer address documents by *collection path*
(``productions`` or ``productions/{id}/cast_members``) and document id, the
way a hierarchical document database does. Adapters carry no business logic;
they translate these primitives onto a concrete backend and surface every
backend failure as :class:`StoreUnavailable`.
"""

from __future__ import annotations

import asyncio
import copy
import itertools
import logging
import uuid
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Sequence, Tuple

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from callboard.core.database import DatabaseManager, database_manager
from callboard.core.exceptions import StoreUnavailable
from callboard.utils.monitoring import observe_operation

logger = logging.getLogger(__name__)

Document = Dict[str, Any]
Filter = Tuple[str, str, Any]

VERSION_FIELD = "version"
# Documents written before versioning carry no token and count as this version.
INITIAL_VERSION = 1
PARENT_FIELD = "_parent"
FILTER_OPERATORS = ("==", "array_contains")


class WriteMode(Enum):
    REPLACE = "replace"
    MERGE = "merge"


class SortDirection(Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"


def split_path(path: str) -> Tuple[str, Optional[str]]:
    """Split a collection path into ``(collection, parent document path)``.

    >>> split_path("productions/abc/cast_members")
    ('cast_members', 'productions/abc')
    """

    segments = path.split("/")
    if any(not segment for segment in segments) or len(segments) % 2 == 0:
        raise ValueError(f"Invalid collection path: {path!r}")
    if len(segments) == 1:
        return segments[0], None
    return segments[-1], "/".join(segments[:-1])


def _validate_filters(filters: Iterable[Filter]) -> List[Filter]:
    validated = []
    for field, operator, value in filters:
        if operator not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {operator!r}")
        validated.append((field, operator, value))
    return validated


class DocumentStore(ABC):
    """Primitives of a schemaless document database."""

    @abstractmethod
    async def get(self, path: str, doc_id: str) -> Optional[Document]:
        """Return the document with its id under ``id``, or ``None``."""

    @abstractmethod
    async def add(self, path: str, document: Document) -> str:
        """Insert ``document`` under a store-assigned id and return the id."""

    @abstractmethod
    async def put(self, path: str, doc_id: str, document: Document, mode: WriteMode = WriteMode.REPLACE) -> None:
        """Upsert ``document``, replacing it wholesale or merging top-level fields."""

    @abstractmethod
    async def update(self, path: str, doc_id: str, fields: Document) -> bool:
        """Merge ``fields`` into an existing document.

        Returns:
            ``False`` without writing anything when the document does not exist.
        """

    @abstractmethod
    async def replace_if_version(self, path: str, doc_id: str, document: Document, expected_version: int) -> bool:
        """Replace the document only if its ``version`` still equals ``expected_version``.

        A document without a ``version`` field matches ``INITIAL_VERSION``.
        """

    @abstractmethod
    async def delete(self, path: str, doc_id: str) -> None:
        """Remove the document if it exists."""

    @abstractmethod
    async def query_ordered(
        self,
        path: str,
        order_field: str,
        direction: SortDirection = SortDirection.ASCENDING,
        filters: Sequence[Filter] = (),
    ) -> List[Document]:
        """Return documents having ``order_field``, sorted on it and matching every filter."""


class InMemoryDocumentStore(DocumentStore):
    """Keep documents in local process memory.

    Every call yields to the event loop once (``latency`` seconds, zero by
    default) the way a network round trip would, so interleavings between
    concurrent callers match those seen against a remote database.
    """

    def __init__(self, latency: float = 0.0) -> None:
        self.latency = latency
        self._collections: Dict[str, Dict[str, Document]] = {}
        self._sequence: Dict[Tuple[str, str], int] = {}
        self._counter = itertools.count()

    async def get(self, path: str, doc_id: str) -> Optional[Document]:
        await self._round_trip()
        document = self._collection(path).get(doc_id)
        if document is None:
            return None
        return self._export(doc_id, document)

    async def add(self, path: str, document: Document) -> str:
        await self._round_trip()
        doc_id = uuid.uuid4().hex
        self._store(path, doc_id, copy.deepcopy(document))
        return doc_id

    async def put(self, path: str, doc_id: str, document: Document, mode: WriteMode = WriteMode.REPLACE) -> None:
        await self._round_trip()
        current = self._collection(path).get(doc_id)
        if mode is WriteMode.MERGE and current is not None:
            current.update(_without_id(document))
            return
        self._store(path, doc_id, copy.deepcopy(document))

    async def update(self, path: str, doc_id: str, fields: Document) -> bool:
        await self._round_trip()
        current = self._collection(path).get(doc_id)
        if current is None:
            return False
        current.update(_without_id(fields))
        return True

    async def replace_if_version(self, path: str, doc_id: str, document: Document, expected_version: int) -> bool:
        await self._round_trip()
        current = self._collection(path).get(doc_id)
        if current is None or current.get(VERSION_FIELD, INITIAL_VERSION) != expected_version:
            return False
        self._store(path, doc_id, copy.deepcopy(document))
        return True

    async def delete(self, path: str, doc_id: str) -> None:
        await self._round_trip()
        self._collection(path).pop(doc_id, None)
        self._sequence.pop((path, doc_id), None)

    async def query_ordered(
        self,
        path: str,
        order_field: str,
        direction: SortDirection = SortDirection.ASCENDING,
        filters: Sequence[Filter] = (),
    ) -> List[Document]:
        await self._round_trip()
        criteria = _validate_filters(filters)
        matches = [
            (doc_id, document)
            for doc_id, document in self._collection(path).items()
            if order_field in document and all(_matches(document, criterion) for criterion in criteria)
        ]
        # Equal sort keys fall back to insertion order.
        matches.sort(
            key=lambda item: (item[1][order_field], self._sequence[(path, item[0])]),
            reverse=direction is SortDirection.DESCENDING,
        )
        return [self._export(doc_id, document) for doc_id, document in matches]

    def _collection(self, path: str) -> Dict[str, Document]:
        split_path(path)
        return self._collections.setdefault(path, {})

    def _store(self, path: str, doc_id: str, document: Document) -> None:
        document.pop("id", None)
        self._collection(path)[doc_id] = document
        self._sequence.setdefault((path, doc_id), next(self._counter))

    @staticmethod
    def _export(doc_id: str, document: Document) -> Document:
        exported = copy.deepcopy(document)
        exported["id"] = doc_id
        return exported

    async def _round_trip(self) -> None:
        await asyncio.sleep(self.latency)


def _without_id(document: Document) -> Document:
    return {key: copy.deepcopy(value) for key, value in document.items() if key != "id"}


def _matches(document: Document, criterion: Filter) -> bool:
    field, operator, value = criterion
    if field not in document:
        return False
    if operator == "==":
        return document[field] == value
    candidate = document[field]
    return isinstance(candidate, list) and value in candidate


class MongoDocumentStore(DocumentStore):
    """Document store backed by MongoDB through motor.

    A top-level path maps to the collection of the same name. A subcollection
    path maps to the collection named by its last segment, with documents
    scoped by a ``_parent`` field holding the parent document path.
    """

    def __init__(self, manager: Optional[DatabaseManager] = None, database: Any = None) -> None:
        self.manager = manager or database_manager
        self._database = database

    async def get(self, path: str, doc_id: str) -> Optional[Document]:
        collection, scope = self._resolve(path)
        async with self._guard("get", path):
            document = await collection.find_one({"_id": doc_id, **scope})
        return _from_mongo(document) if document else None

    async def add(self, path: str, document: Document) -> str:
        collection, scope = self._resolve(path)
        # ObjectId hex sorts in creation order, so it doubles as the tie-break key.
        doc_id = str(ObjectId())
        async with self._guard("add", path):
            await collection.insert_one({**_to_mongo(document), **scope, "_id": doc_id})
        return doc_id

    async def put(self, path: str, doc_id: str, document: Document, mode: WriteMode = WriteMode.REPLACE) -> None:
        collection, scope = self._resolve(path)
        query = {"_id": doc_id, **scope}
        async with self._guard(f"put_{mode.value}", path):
            if mode is WriteMode.REPLACE:
                await collection.replace_one(query, {**_to_mongo(document), **scope}, upsert=True)
                return
            fields = {**_to_mongo(document), **scope}
            if fields:
                await collection.update_one(query, {"$set": fields}, upsert=True)
            else:
                await collection.update_one(query, {"$setOnInsert": {"_id": doc_id}}, upsert=True)

    async def update(self, path: str, doc_id: str, fields: Document) -> bool:
        collection, scope = self._resolve(path)
        query = {"_id": doc_id, **scope}
        payload = _to_mongo(fields)
        async with self._guard("update", path):
            if not payload:
                return await collection.count_documents(query, limit=1) > 0
            result = await collection.update_one(query, {"$set": payload})
        return result.matched_count > 0

    async def replace_if_version(self, path: str, doc_id: str, document: Document, expected_version: int) -> bool:
        collection, scope = self._resolve(path)
        query: Document = {"_id": doc_id, **scope, VERSION_FIELD: expected_version}
        if expected_version == INITIAL_VERSION:
            del query[VERSION_FIELD]
            query["$or"] = [{VERSION_FIELD: INITIAL_VERSION}, {VERSION_FIELD: {"$exists": False}}]
        async with self._guard("replace_if_version", path):
            result = await collection.replace_one(query, {**_to_mongo(document), **scope})
        return result.matched_count == 1

    async def delete(self, path: str, doc_id: str) -> None:
        collection, scope = self._resolve(path)
        async with self._guard("delete", path):
            await collection.delete_one({"_id": doc_id, **scope})

    async def query_ordered(
        self,
        path: str,
        order_field: str,
        direction: SortDirection = SortDirection.ASCENDING,
        filters: Sequence[Filter] = (),
    ) -> List[Document]:
        collection, scope = self._resolve(path)
        query: Document = {**scope, order_field: {"$exists": True}}
        for field, _operator, value in _validate_filters(filters):
            # MongoDB equality on an array field already means "contains".
            query[field] = value
        sort_order = DESCENDING if direction is SortDirection.DESCENDING else ASCENDING

        results: List[Document] = []
        async with self._guard("query_ordered", path):
            cursor = collection.find(query).sort([(order_field, sort_order), ("_id", sort_order)])
            async for document in cursor:
                results.append(_from_mongo(document))
        return results

    def _resolve(self, path: str) -> Tuple[Any, Document]:
        name, parent = split_path(path)
        database = self._database if self._database is not None else self.manager.database
        if database is None:
            raise StoreUnavailable("MongoDB unavailable; database manager not initialized", details={"path": path})
        scope = {PARENT_FIELD: parent} if parent else {}
        return database[name], scope

    @asynccontextmanager
    async def _guard(self, operation: str, path: str) -> AsyncIterator[None]:
        try:
            yield
        except PyMongoError as exc:
            observe_operation(operation, "error")
            logger.error("MongoDB %s failed on %s: %s", operation, path, exc)
            raise StoreUnavailable(str(exc), details={"operation": operation, "path": path}) from exc
        observe_operation(operation, "ok")


def _to_mongo(document: Document) -> Document:
    return {key: value for key, value in document.items() if key not in ("id", "_id", PARENT_FIELD)}


def _from_mongo(document: Document) -> Document:
    exported = {key: value for key, value in document.items() if key not in ("_id", PARENT_FIELD)}
    exported["id"] = document["_id"]
    return exported


__all__ = [
    "Document",
    "DocumentStore",
    "Filter",
    "InMemoryDocumentStore",
    "MongoDocumentStore",
    "SortDirection",
    "WriteMode",
    "split_path",
]
