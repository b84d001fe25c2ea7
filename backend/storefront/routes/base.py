"""
Storefront Backend — Dashboard Route Handlers
===============================================

What:  GET /api/v1/base/get/count, the admin dashboard counters.
"""

from fastapi import APIRouter, Depends
from pymongo.asynchronous.database import AsyncDatabase

from storefront.database import get_database
from storefront.schemas.common import ApiResponse, CountsResponse
from storefront.services.stats_service import stats_service

router = APIRouter(prefix="/base", tags=["Dashboard"])


@router.get(
    "/get/count",
    response_model=ApiResponse[CountsResponse],
    summary="Collection counts",
)
async def get_counts(db: AsyncDatabase = Depends(get_database)):
    counts = await stats_service.get_counts(db)
    return ApiResponse(status=200, data=counts, message="Counts found successfully")
