"""
Storefront Backend — Product Service
======================================

What:  Product catalogue operations.
How:   ContentService flows with two required images: `thumbnail` (listing
       cards) and `bigImage` (detail page).

`category` is stored as free text naming a Category; it is not checked
against the categories collection and survives category deletion.
"""

import logging
from typing import Optional

from pymongo.asynchronous.database import AsyncDatabase

from storefront.database import PRODUCTS
from storefront.schemas.product import (
    LIST_FIELDS,
    RECENT_FIELDS,
    ProductCreate,
    ProductListItem,
    ProductRecentItem,
    ProductResponse,
)
from storefront.services.content_service import ContentService, ImageFiles

logger = logging.getLogger(__name__)


class ProductService(ContentService):
    collection = PRODUCTS
    resource = "Product"
    image_fields = {"thumbnail": "Thumbnail", "big_image": "Big image"}
    response_model = ProductResponse
    list_model = ProductListItem
    list_fields = LIST_FIELDS
    recent_model = ProductRecentItem
    recent_fields = RECENT_FIELDS

    async def create(
        self,
        db: AsyncDatabase,
        data: ProductCreate,
        files: Optional[ImageFiles],
    ) -> ProductResponse:
        doc = await self._create(db, data.model_dump(), files)
        logger.info("Product '%s' listed under '%s'", doc["name"], doc["category"])
        return ProductResponse.from_document(doc)


product_service = ProductService()
