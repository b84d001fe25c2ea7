"""
Storefront Backend — Banner Route Handlers
============================================

What:  /api/v1/banners: create (max 3), list, detail, replace image, delete.
How:   The only input is the multipart `image` part.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from pymongo.asynchronous.database import AsyncDatabase

from storefront.database import get_database
from storefront.schemas.banner import BannerResponse
from storefront.schemas.common import ApiResponse
from storefront.services.banner_service import banner_service

router = APIRouter(prefix="/banners", tags=["Banners"])


@router.post(
    "/create",
    response_model=ApiResponse[str],
    responses={400: {"description": "Banner limit reached or invalid image", "model": ApiResponse[None]}},
    summary="Create a banner",
    description="Multipart form with a required `image`. Fails once three banners exist. Returns the id.",
)
async def create_banner(
    image: Optional[UploadFile] = File(None),
    db: AsyncDatabase = Depends(get_database),
):
    banner = await banner_service.create(db, {"image": image})
    return ApiResponse(status=200, data=banner.id, message="Banner created successfully")


@router.get("/get", response_model=ApiResponse[List[BannerResponse]], summary="List banners (storefront)")
@router.get("/get/all", response_model=ApiResponse[List[BannerResponse]], summary="List banners (admin)")
async def list_banners(db: AsyncDatabase = Depends(get_database)):
    banners = await banner_service.list_all(db)
    return ApiResponse(status=200, data=banners, message="Banner found successfully")


@router.get("/{banner_id}", response_model=ApiResponse[BannerResponse], summary="Get one banner")
async def get_banner(banner_id: str, db: AsyncDatabase = Depends(get_database)):
    banner = await banner_service.get(db, banner_id)
    return ApiResponse(status=200, data=banner, message="Banner found successfully")


@router.patch("/update/{banner_id}", response_model=ApiResponse[BannerResponse], summary="Replace a banner image")
async def update_banner(
    banner_id: str,
    image: Optional[UploadFile] = File(None),
    db: AsyncDatabase = Depends(get_database),
):
    updated = await banner_service.update(db, banner_id, files={"image": image})
    return ApiResponse(
        status=200,
        data=BannerResponse.from_document(updated),
        message="Banner updated successfully",
    )


@router.delete("/delete/{banner_id}", response_model=ApiResponse[None], summary="Delete a banner and its image")
async def delete_banner(banner_id: str, db: AsyncDatabase = Depends(get_database)):
    await banner_service.delete(db, banner_id)
    return ApiResponse(status=200, data=None, message="Banner deleted successfully")
