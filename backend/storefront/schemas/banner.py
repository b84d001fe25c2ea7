"""
Storefront Backend — Banner Schemas
=====================================

What:  Response shape for /api/v1/banners. Banners carry no form fields; the
       only input is the multipart `image` file.
"""

from storefront.schemas.common import TimestampedModel


class BannerResponse(TimestampedModel):
    image: str


LIST_FIELDS = ("image", "created_at")
