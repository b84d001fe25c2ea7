"""
Storefront Backend — Category Schemas
=======================================

What:  Request validation and response shapes for /api/v1/categories.

Category names are referenced by products as free text, so the name is both
the display label and the soft key. It is unique across the collection.
"""

from typing import Optional

from pydantic import Field

from storefront.schemas.common import CamelModel, DocumentModel, TimestampedModel


class CategoryCreate(CamelModel):
    name: str = Field(min_length=3, max_length=50)
    is_public: bool


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=50)
    is_public: Optional[bool] = None


class CategoryResponse(TimestampedModel):
    name: str
    thumbnail: str
    is_public: bool = True


class CategoryName(DocumentModel):
    """Entry of GET /categories/get/names (product form dropdown)."""

    name: str


LIST_FIELDS = ("name", "thumbnail", "is_public")
