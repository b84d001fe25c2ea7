"""
Storefront Backend — Blog Service
===================================

What:  Blog post operations.
How:   ContentService flows with two required images: `thumbnail` (listing
       cards) and `detailImage` (article header).

Replacing one image deletes only the asset it replaces; deleting a post
deletes both of its assets.
"""

from typing import Optional

from pymongo.asynchronous.database import AsyncDatabase

from storefront.database import BLOGS
from storefront.schemas.blog import (
    LIST_FIELDS,
    RECENT_FIELDS,
    BlogCreate,
    BlogListItem,
    BlogRecentItem,
    BlogResponse,
)
from storefront.services.content_service import ContentService, ImageFiles


class BlogService(ContentService):
    collection = BLOGS
    resource = "Blog"
    image_fields = {"thumbnail": "Thumbnail", "detail_image": "Detail image"}
    response_model = BlogResponse
    list_model = BlogListItem
    list_fields = LIST_FIELDS
    recent_model = BlogRecentItem
    recent_fields = RECENT_FIELDS

    async def create(
        self,
        db: AsyncDatabase,
        data: BlogCreate,
        files: Optional[ImageFiles],
    ) -> BlogResponse:
        doc = await self._create(db, data.model_dump(), files)
        return BlogResponse.from_document(doc)


blog_service = BlogService()
