"""
Storefront Backend — Stats Service
====================================

What:  Dashboard counts for the four content collections.
How:   Four independent count_documents calls. A write landing between two
       counts is acceptable staleness; there is no snapshot guarantee.
"""

from pymongo.asynchronous.database import AsyncDatabase

from storefront.database import BANNERS, BLOGS, CATEGORIES, PRODUCTS
from storefront.models.store import DocumentStore
from storefront.schemas.common import CountsResponse


class StatsService:

    async def get_counts(self, db: AsyncDatabase) -> CountsResponse:
        return CountsResponse(
            product_count=await DocumentStore(db, PRODUCTS, "Product").count(),
            blog_count=await DocumentStore(db, BLOGS, "Blog").count(),
            category_count=await DocumentStore(db, CATEGORIES, "Category").count(),
            banner_count=await DocumentStore(db, BANNERS, "Banner").count(),
        )


stats_service = StatsService()
