"""
Storefront Backend — Banner Service
=====================================

What:  Home page banner operations; each banner is a single image.
Why:   The storefront carousel shows at most BANNER_LIMIT (3) banners.

Limit enforcement:
    ┌────────────┐  full   ┌──────────────────────────┐
    │ count()    │───────▶ │ LimitExceededError (400) │  no upload made
    └─────┬──────┘         └──────────────────────────┘
          │ room
          ▼
    upload → insert → count() again → over the limit? undo own insert

    Two concurrent creates can both pass the first count. The second count
    runs after this request's own insert is committed, so it sees every
    banner that could have been answered with success before it. A request
    that finds more than BANNER_LIMIT removes its own document and asset.
    Racing creates may both be rejected; more than BANNER_LIMIT banners are
    never left stored.
"""

import logging
from typing import Optional

from pymongo.asynchronous.database import AsyncDatabase

from storefront.config import settings
from storefront.database import BANNERS
from storefront.exceptions import LimitExceededError
from storefront.schemas.banner import LIST_FIELDS, BannerResponse
from storefront.services.content_service import ContentService, ImageFiles

logger = logging.getLogger(__name__)

LIMIT_MESSAGE = "Banner limit reached"


class BannerService(ContentService):
    collection = BANNERS
    resource = "Banner"
    image_fields = {"image": "Image"}
    response_model = BannerResponse
    list_fields = LIST_FIELDS

    def __init__(self, limit: Optional[int] = None):
        self.limit = limit or settings.banner_limit

    async def create(self, db: AsyncDatabase, files: Optional[ImageFiles]) -> BannerResponse:
        """
        Raises:
            LimitExceededError: BANNER_LIMIT banners already exist, or a
                concurrent create filled the last slot first
        """
        store = self.store(db)
        if await store.count() >= self.limit:
            raise LimitExceededError(message=LIMIT_MESSAGE, limit=self.limit)

        doc = await self._create(db, {}, files)

        stored = await store.count()
        if stored > self.limit:
            logger.warning(
                "Banner %s pushed the count to %d (limit %d); rolling back",
                doc["_id"],
                stored,
                self.limit,
            )
            await store.delete(doc["_id"])
            await self._discard_image(doc.get("image"))
            raise LimitExceededError(message=LIMIT_MESSAGE, limit=self.limit)

        return BannerResponse.from_document(doc)


banner_service = BannerService()
