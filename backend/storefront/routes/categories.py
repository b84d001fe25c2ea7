"""
Storefront Backend — Category Route Handlers
==============================================

What:  /api/v1/categories: create, list, names, detail, update, delete.
Who:   Admin dashboard; `get/names` also feeds the product form dropdown.

Route note:
    A category can be fetched by `/get/{id}` or `/{id}`; both serve the same
    handler. Older dashboard builds use the first form.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile
from pymongo.asynchronous.database import AsyncDatabase

from storefront.database import get_database
from storefront.schemas.category import (
    CategoryCreate,
    CategoryName,
    CategoryResponse,
    CategoryUpdate,
)
from storefront.schemas.common import ApiResponse
from storefront.services.category_service import category_service
from storefront.validation import read_body_fields, validate_fields

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.post(
    "/create",
    response_model=ApiResponse[str],
    summary="Create a category",
    description="Multipart form: `name`, `isPublic` and a required `thumbnail`. Returns the name.",
)
async def create_category(
    request: Request,
    thumbnail: Optional[UploadFile] = File(None),
    db: AsyncDatabase = Depends(get_database),
):
    data = validate_fields(CategoryCreate, await read_body_fields(request))
    category = await category_service.create(db, data, {"thumbnail": thumbnail})
    return ApiResponse(status=200, data=category.name, message="Category created successfully")


@router.get("/get/all", response_model=ApiResponse[List[CategoryResponse]], summary="List all categories")
async def list_categories(db: AsyncDatabase = Depends(get_database)):
    categories = await category_service.list_all(db)
    return ApiResponse(status=200, data=categories, message="Categories found successfully")


@router.get("/get/names", response_model=ApiResponse[List[CategoryName]], summary="Category names, A to Z")
async def list_category_names(db: AsyncDatabase = Depends(get_database)):
    names = await category_service.list_names(db)
    return ApiResponse(status=200, data=names, message="Categories found successfully")


@router.get("/get/{category_id}", response_model=ApiResponse[CategoryResponse], summary="Get one category")
@router.get("/{category_id}", response_model=ApiResponse[CategoryResponse], include_in_schema=False)
async def get_category(category_id: str, db: AsyncDatabase = Depends(get_database)):
    category = await category_service.get(db, category_id)
    return ApiResponse(status=200, data=category, message="Category found successfully")


@router.patch("/update/{category_id}", response_model=ApiResponse[CategoryResponse], summary="Update a category")
async def update_category(
    category_id: str,
    request: Request,
    thumbnail: Optional[UploadFile] = File(None),
    db: AsyncDatabase = Depends(get_database),
):
    changes = validate_fields(CategoryUpdate, await read_body_fields(request))
    updated = await category_service.update(db, category_id, changes, {"thumbnail": thumbnail})
    return ApiResponse(
        status=200,
        data=CategoryResponse.from_document(updated),
        message="Category updated successfully",
    )


@router.delete("/delete/{category_id}", response_model=ApiResponse[None], summary="Delete a category")
async def delete_category(category_id: str, db: AsyncDatabase = Depends(get_database)):
    # Products naming this category keep the name; it is a soft reference
    await category_service.delete(db, category_id)
    return ApiResponse(status=200, data=None, message="Category deleted successfully")
