"""
Storefront Backend — Product Route Handlers
=============================================

What:  /api/v1/products: create, list, recent, detail, update, delete.
How:   Text fields are validated with ProductCreate/ProductUpdate, image parts
       (`thumbnail`, `bigImage`) are handed to ProductService, and every
       outcome is wrapped in the `{status, data, message}` envelope.
Who:   Admin dashboard (create/update/delete, full listing) and the public
       storefront (recent, detail).
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from pymongo.asynchronous.database import AsyncDatabase

from storefront.database import get_database
from storefront.schemas.common import ApiResponse
from storefront.schemas.product import (
    ProductCreate,
    ProductListItem,
    ProductRecentItem,
    ProductResponse,
    ProductUpdate,
)
from storefront.services.product_service import product_service
from storefront.validation import read_body_fields, validate_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["Products"])

ERRORS = {
    400: {"description": "Validation, format or no-op error", "model": ApiResponse[None]},
    404: {"description": "Product not found", "model": ApiResponse[None]},
    500: {"description": "Upload or database failure", "model": ApiResponse[None]},
}


@router.post(
    "/create",
    response_model=ApiResponse[str],
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
    summary="Create a product",
    description=(
        "Multipart form with the product fields plus two required images, "
        "`thumbnail` and `bigImage` (JPEG or PNG). Returns the product name."
    ),
)
async def create_product(
    request: Request,
    thumbnail: Optional[UploadFile] = File(None),
    big_image: Optional[UploadFile] = File(None, alias="bigImage"),
    db: AsyncDatabase = Depends(get_database),
) -> ApiResponse[str]:
    data = validate_fields(ProductCreate, await read_body_fields(request))
    product = await product_service.create(
        db, data, {"thumbnail": thumbnail, "big_image": big_image}
    )
    return ApiResponse(
        status=status.HTTP_201_CREATED,
        data=product.name,
        message="Product created successfully",
    )


@router.get(
    "/get/all",
    response_model=ApiResponse[List[ProductListItem]],
    summary="List all products (admin table)",
)
async def list_products(db: AsyncDatabase = Depends(get_database)):
    products = await product_service.list_all(db)
    return ApiResponse(status=200, data=products, message="Products found successfully")


@router.get(
    "/get/recent",
    response_model=ApiResponse[List[ProductRecentItem]],
    summary="Newest products (storefront cards)",
)
async def list_recent_products(db: AsyncDatabase = Depends(get_database)):
    products = await product_service.list_recent(db)
    return ApiResponse(status=200, data=products, message="Products found successfully")


@router.get(
    "/{product_id}",
    response_model=ApiResponse[ProductResponse],
    responses={404: ERRORS[404]},
    summary="Get one product",
)
async def get_product(product_id: str, db: AsyncDatabase = Depends(get_database)):
    product = await product_service.get(db, product_id)
    return ApiResponse(status=200, data=product, message="Product found successfully")


@router.patch(
    "/update/{product_id}",
    response_model=ApiResponse[str],
    responses=ERRORS,
    summary="Update a product",
    description=(
        "Any subset of the product fields, and optionally a new `thumbnail` "
        "and/or `bigImage`. Replaced images are deleted from the asset host. "
        "Returns the product id."
    ),
)
async def update_product(
    product_id: str,
    request: Request,
    thumbnail: Optional[UploadFile] = File(None),
    big_image: Optional[UploadFile] = File(None, alias="bigImage"),
    db: AsyncDatabase = Depends(get_database),
) -> ApiResponse[str]:
    changes = validate_fields(ProductUpdate, await read_body_fields(request))
    updated = await product_service.update(
        db, product_id, changes, {"thumbnail": thumbnail, "big_image": big_image}
    )
    return ApiResponse(status=200, data=str(updated["_id"]), message="Product updated successfully")


@router.delete(
    "/delete/{product_id}",
    response_model=ApiResponse[None],
    responses={404: ERRORS[404]},
    summary="Delete a product and its images",
)
async def delete_product(product_id: str, db: AsyncDatabase = Depends(get_database)):
    await product_service.delete(db, product_id)
    return ApiResponse(status=200, data=None, message="Product deleted successfully")
