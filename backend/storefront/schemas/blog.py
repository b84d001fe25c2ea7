"""
Storefront Backend — Blog Schemas
===================================

What:  Request validation and response shapes for /api/v1/blogs.
"""

from typing import Optional

from pydantic import Field

from storefront.schemas.common import CamelModel, DocumentModel, TimestampedModel


class BlogCreate(CamelModel):
    title: str = Field(min_length=3, max_length=50)
    content: str = Field(min_length=1)
    is_public: bool
    # SEO fields may be sent empty by the editor form
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: Optional[str] = None


class BlogUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=3, max_length=50)
    content: Optional[str] = Field(default=None, min_length=1)
    is_public: Optional[bool] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: Optional[str] = None


class BlogResponse(TimestampedModel):
    title: str
    content: str
    thumbnail: str
    detail_image: str
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: Optional[str] = None
    is_public: bool = True


class BlogListItem(DocumentModel):
    title: str
    thumbnail: str
    is_public: bool = True


class BlogRecentItem(DocumentModel):
    title: str
    thumbnail: str


LIST_FIELDS = ("title", "thumbnail", "is_public")
RECENT_FIELDS = ("title", "thumbnail")
