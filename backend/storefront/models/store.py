"""
Storefront Backend — Document Store
=====================================

What:  Generic CRUD over one Mongo collection: create, get by id, list,
       list recent, partial update, delete, count.
Why:   The four content collections (and users) share identical persistence
       rules; only their fields and image slots differ. Services compose one
       DocumentStore each instead of repeating driver calls.
How:   Thin async wrapper over a pymongo `AsyncCollection`. Documents are plain
       dicts with snake_case keys plus `_id`, `created_at`, `updated_at`.

Update semantics:
    Only fields whose new value differs from the stored value are written
    ($set of the diff). A request that changes no field and replaces no image
    raises NoOpError instead of touching the document.

Error translation:
    - Malformed ObjectId → NotFoundError (it can never match a document)
    - DuplicateKeyError  → propagated; the caller knows which unique name it means
    - Other PyMongoError → PersistFailureError (details logged, not returned)
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from storefront.exceptions import NoOpError, NotFoundError, PersistFailureError

logger = logging.getLogger(__name__)

NEWEST_FIRST: List[Tuple[str, int]] = [("created_at", DESCENDING)]


def parse_object_id(value: Any) -> Optional[ObjectId]:
    """Return an ObjectId for `value`, or None when it is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStore:
    """
    Persistence for a single collection.

    Args:
        db:         Database handle for the current request
        collection: Collection name (see storefront.database)
        resource:   Human-readable name used in NotFound messages ("Product")
    """

    def __init__(self, db: AsyncDatabase, collection: str, resource: str):
        self.collection = db[collection]
        self.collection_name = collection
        self.resource = resource

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_by_id(
        self,
        record_id: Any,
        projection: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Fetch one document by id.

        Raises:
            NotFoundError: id is malformed or no document matches (→ 404)
        """
        oid = parse_object_id(record_id)
        if oid is None:
            raise NotFoundError(resource=self.resource, resource_id=str(record_id))
        try:
            doc = await self.collection.find_one({"_id": oid}, projection)
        except PyMongoError as e:
            raise self._persist_failure("read", e, record_id=str(record_id))
        if doc is None:
            raise NotFoundError(resource=self.resource, resource_id=str(record_id))
        return doc

    async def find_one(self, query: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            return await self.collection.find_one(dict(query))
        except PyMongoError as e:
            raise self._persist_failure("read", e)

    async def list(
        self,
        projection: Optional[Mapping[str, Any]] = None,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
        limit: int = 0,
    ) -> List[Dict[str, Any]]:
        """
        List documents.

        Default order is newest-first by created_at, matching every listing
        endpoint; reference lookups pass their own sort (e.g. by name).
        """
        cursor = self.collection.find({}, projection)
        cursor = cursor.sort(list(sort or NEWEST_FIRST))
        if limit:
            cursor = cursor.limit(limit)
        try:
            return await cursor.to_list(length=None)
        except PyMongoError as e:
            raise self._persist_failure("list", e)

    async def list_recent(
        self,
        n: int = 4,
        projection: Optional[Mapping[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        return await self.list(projection=projection, sort=NEWEST_FIRST, limit=n)

    async def count(self) -> int:
        try:
            return await self.collection.count_documents({})
        except PyMongoError as e:
            raise self._persist_failure("count", e)

    # ── Writes ────────────────────────────────────────────────────────────

    async def create(self, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Insert a new document stamped with created_at/updated_at.

        Returns:
            The inserted document including its generated `_id`.

        Raises:
            DuplicateKeyError: a unique index rejected the document
            PersistFailureError: any other driver failure
        """
        now = utcnow()
        doc = dict(fields)
        doc["created_at"] = now
        doc["updated_at"] = now
        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise
        except PyMongoError as e:
            raise self._persist_failure("create", e)
        doc["_id"] = result.inserted_id
        logger.info("%s created: %s", self.resource, result.inserted_id)
        return doc

    async def update(
        self,
        record_id: Any,
        changes: Mapping[str, Any],
        replaced_images: Optional[Mapping[str, str]] = None,
        current: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Apply a partial update.

        Args:
            record_id:       Target document id
            changes:         Candidate field values (None values are ignored)
            replaced_images: Image field → new URL, already uploaded
            current:         Pre-fetched document, to avoid a second read

        Returns:
            The document after the update.

        Raises:
            NotFoundError: no such document
            NoOpError:     nothing differs and no image was replaced
        """
        doc = dict(current) if current is not None else await self.get_by_id(record_id)
        diff = self.diff(doc, changes)
        diff.update(replaced_images or {})
        if not diff:
            raise NoOpError()

        diff["updated_at"] = utcnow()
        try:
            updated = await self.collection.find_one_and_update(
                {"_id": doc["_id"]},
                {"$set": diff},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            raise
        except PyMongoError as e:
            raise self._persist_failure("update", e, record_id=str(record_id))
        if updated is None:
            # Deleted between our read and the write
            raise NotFoundError(resource=self.resource, resource_id=str(record_id))
        logger.info(
            "%s %s updated: %s",
            self.resource,
            doc["_id"],
            ", ".join(sorted(k for k in diff if k != "updated_at")),
        )
        return updated

    async def delete(self, record_id: Any) -> bool:
        oid = parse_object_id(record_id)
        if oid is None:
            raise NotFoundError(resource=self.resource, resource_id=str(record_id))
        try:
            result = await self.collection.delete_one({"_id": oid})
        except PyMongoError as e:
            raise self._persist_failure("delete", e, record_id=str(record_id))
        if result.deleted_count == 0:
            raise NotFoundError(resource=self.resource, resource_id=str(record_id))
        logger.info("%s deleted: %s", self.resource, oid)
        return True

    # ── Helpers ───────────────────────────────────────────────────────────

    @staticmethod
    def diff(current: Mapping[str, Any], changes: Mapping[str, Any]) -> Dict[str, Any]:
        """Fields of `changes` that are set and differ from `current`."""
        return {
            key: value
            for key, value in changes.items()
            if value is not None and current.get(key) != value
        }

    def _persist_failure(self, operation: str, error: Exception, **context: Any) -> PersistFailureError:
        logger.error(
            "Mongo %s on %s failed: %s",
            operation,
            self.collection_name,
            str(error),
            exc_info=True,
        )
        return PersistFailureError(
            message=f"{self.resource} {operation} failed",
            context={"collection": self.collection_name, "error_type": type(error).__name__, **context},
        )


def field_projection(fields: Iterable[str]) -> Dict[str, int]:
    """Build a Mongo inclusion projection; `_id` is always returned."""
    return {name: 1 for name in fields}
