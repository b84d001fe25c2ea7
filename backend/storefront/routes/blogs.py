"""
Storefront Backend — Blog Route Handlers
==========================================

What:  /api/v1/blogs: create, list, recent, detail, update, delete.
How:   Same shape as the product routes; the image parts are `thumbnail`
       and `detailImage`.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile
from pymongo.asynchronous.database import AsyncDatabase

from storefront.database import get_database
from storefront.schemas.blog import (
    BlogCreate,
    BlogListItem,
    BlogRecentItem,
    BlogResponse,
    BlogUpdate,
)
from storefront.schemas.common import ApiResponse
from storefront.services.blog_service import blog_service
from storefront.validation import read_body_fields, validate_fields

router = APIRouter(prefix="/blogs", tags=["Blogs"])


@router.post("/create", response_model=ApiResponse[str], summary="Create a blog post")
async def create_blog(
    request: Request,
    thumbnail: Optional[UploadFile] = File(None),
    detail_image: Optional[UploadFile] = File(None, alias="detailImage"),
    db: AsyncDatabase = Depends(get_database),
):
    data = validate_fields(BlogCreate, await read_body_fields(request))
    blog = await blog_service.create(
        db, data, {"thumbnail": thumbnail, "detail_image": detail_image}
    )
    return ApiResponse(status=200, data=blog.title, message="Blog created successfully")


@router.get("/get/all", response_model=ApiResponse[List[BlogListItem]], summary="List all blog posts")
async def list_blogs(db: AsyncDatabase = Depends(get_database)):
    blogs = await blog_service.list_all(db)
    return ApiResponse(status=200, data=blogs, message="Blogs found successfully")


@router.get("/get/recent", response_model=ApiResponse[List[BlogRecentItem]], summary="Newest blog posts")
async def list_recent_blogs(db: AsyncDatabase = Depends(get_database)):
    blogs = await blog_service.list_recent(db)
    return ApiResponse(status=200, data=blogs, message="Blogs found successfully")


@router.get("/{blog_id}", response_model=ApiResponse[BlogResponse], summary="Get one blog post")
async def get_blog(blog_id: str, db: AsyncDatabase = Depends(get_database)):
    blog = await blog_service.get(db, blog_id)
    return ApiResponse(status=200, data=blog, message="Blog found successfully")


@router.patch("/update/{blog_id}", response_model=ApiResponse[BlogResponse], summary="Update a blog post")
async def update_blog(
    blog_id: str,
    request: Request,
    thumbnail: Optional[UploadFile] = File(None),
    detail_image: Optional[UploadFile] = File(None, alias="detailImage"),
    db: AsyncDatabase = Depends(get_database),
):
    changes = validate_fields(BlogUpdate, await read_body_fields(request))
    updated = await blog_service.update(
        db, blog_id, changes, {"thumbnail": thumbnail, "detail_image": detail_image}
    )
    return ApiResponse(
        status=200,
        data=BlogResponse.from_document(updated),
        message="Blog updated successfully",
    )


@router.delete("/delete/{blog_id}", response_model=ApiResponse[None], summary="Delete a blog post and its images")
async def delete_blog(blog_id: str, db: AsyncDatabase = Depends(get_database)):
    await blog_service.delete(db, blog_id)
    return ApiResponse(status=200, data=None, message="Blog deleted successfully")
