"""
Storefront Backend — Product Schemas
======================================

What:  Request validation and response shapes for /api/v1/products.

Create vs update:
    Create requires every field except productDescription. Update accepts any
    subset with the same per-field rules; the service rejects an update that
    changes nothing (NoOpError).
"""

from typing import Annotated, Optional

from pydantic import AfterValidator, AnyUrl, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from storefront.schemas.common import CamelModel, DocumentModel, TimestampedModel

_URI = TypeAdapter(AnyUrl)


def _check_uri(value: str) -> str:
    # Validate but store the link exactly as typed (AnyUrl would normalize it)
    try:
        _URI.validate_python(value)
    except PydanticValidationError:
        raise ValueError("must be a valid uri")
    return value


UriStr = Annotated[str, AfterValidator(_check_uri)]


class ProductCreate(CamelModel):
    name: str = Field(min_length=3, max_length=500)
    product_description: Optional[str] = Field(default=None)
    product_detail: str = Field(min_length=10, max_length=2000)
    affiliate_link: UriStr
    category: str = Field(min_length=1)
    quantity: int = Field(gt=0)
    amount: float = Field(gt=0)
    discount: float
    selling_price: float = Field(gt=0)
    is_public: bool


class ProductUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=500)
    product_description: Optional[str] = None
    product_detail: Optional[str] = Field(default=None, min_length=10, max_length=2000)
    affiliate_link: Optional[UriStr] = None
    category: Optional[str] = Field(default=None, min_length=1)
    quantity: Optional[int] = Field(default=None, gt=0)
    amount: Optional[float] = Field(default=None, gt=0)
    discount: Optional[float] = None
    selling_price: Optional[float] = Field(default=None, gt=0)
    is_public: Optional[bool] = None


class ProductResponse(TimestampedModel):
    """Full product record returned by GET /products/{id}."""

    name: str
    product_description: Optional[str] = None
    product_detail: str
    affiliate_link: str
    category: str
    thumbnail: str
    big_image: Optional[str] = None
    quantity: int
    amount: float
    discount: float
    selling_price: float
    is_public: bool = True


class ProductListItem(DocumentModel):
    """Admin table row for GET /products/get/all."""

    name: str
    category: str
    thumbnail: str
    amount: float
    discount: float
    selling_price: float
    is_public: bool = True


class ProductRecentItem(DocumentModel):
    """Storefront card for GET /products/get/recent."""

    name: str
    thumbnail: str
    affiliate_link: str
    selling_price: float


LIST_FIELDS = ("name", "category", "thumbnail", "amount", "discount", "selling_price", "is_public")
RECENT_FIELDS = ("name", "thumbnail", "affiliate_link", "selling_price")
