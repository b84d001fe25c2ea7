"""
Storefront Backend — Category Service
=======================================

What:  Category operations, including the name list used by the product form.
Why:   Category names are the soft key products refer to, so they must be
       unique.

Uniqueness:
    1. Pre-check by name before any upload (no wasted upload on a duplicate)
    2. Unique index on `categories.name` (created at startup) closes the race
       between two concurrent creates; the service turns the driver's
       DuplicateKeyError into the same DuplicateError and deletes the
       thumbnail it just uploaded.
"""

import logging
from typing import Any, List, Mapping, Optional

from pymongo import ASCENDING
from pymongo.asynchronous.database import AsyncDatabase

from storefront.database import CATEGORIES
from storefront.exceptions import DuplicateError
from storefront.models.store import field_projection
from storefront.schemas.category import (
    LIST_FIELDS,
    CategoryCreate,
    CategoryName,
    CategoryResponse,
)
from storefront.services.content_service import ContentService, ImageFiles

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "Category already exists"


class CategoryService(ContentService):
    collection = CATEGORIES
    resource = "Category"
    image_fields = {"thumbnail": "Thumbnail"}
    response_model = CategoryResponse
    list_fields = LIST_FIELDS
    duplicate_message = DUPLICATE_MESSAGE

    async def create(
        self,
        db: AsyncDatabase,
        data: CategoryCreate,
        files: Optional[ImageFiles],
    ) -> CategoryResponse:
        """
        Raises:
            DuplicateError: a category with this name exists (checked before upload)
        """
        await self._ensure_name_free(db, data.name)
        doc = await self._create(db, data.model_dump(), files)
        return CategoryResponse.from_document(doc)

    async def list_names(self, db: AsyncDatabase) -> List[CategoryName]:
        """Every category name, alphabetically, for the product form dropdown."""
        docs = await self.store(db).list(
            projection=field_projection(("name",)),
            sort=[("name", ASCENDING)],
        )
        return [CategoryName.from_document(doc) for doc in docs]

    async def _before_update(
        self,
        db: AsyncDatabase,
        current: Mapping[str, Any],
        changes: Mapping[str, Any],
    ) -> None:
        new_name = changes.get("name")
        if new_name is not None and new_name != current.get("name"):
            await self._ensure_name_free(db, new_name)

    async def _ensure_name_free(self, db: AsyncDatabase, name: str) -> None:
        if await self.store(db).find_one({"name": name}):
            logger.info("Category name '%s' already taken", name)
            raise DuplicateError(message=DUPLICATE_MESSAGE, context={"name": name})


category_service = CategoryService()
