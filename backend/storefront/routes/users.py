"""
Storefront Backend — User Route Handlers
==========================================

What:  POST /api/v1/users/login for the admin dashboard.
How:   JSON body `{email, password}`; returns the user without its hash.
"""

from fastapi import APIRouter, Depends, Request
from pymongo.asynchronous.database import AsyncDatabase

from storefront.database import get_database
from storefront.schemas.common import ApiResponse
from storefront.schemas.user import LoginRequest, UserResponse
from storefront.services.user_service import user_service
from storefront.validation import read_body_fields, validate_fields

router = APIRouter(prefix="/users", tags=["Users"])


@router.post(
    "/login",
    response_model=ApiResponse[UserResponse],
    responses={
        401: {"description": "Wrong password", "model": ApiResponse[None]},
        404: {"description": "Unknown email", "model": ApiResponse[None]},
    },
    summary="Admin login",
)
async def login(request: Request, db: AsyncDatabase = Depends(get_database)):
    credentials = validate_fields(LoginRequest, await read_body_fields(request))
    user = await user_service.login(db, credentials.email, credentials.password)
    return ApiResponse(status=200, data=user, message="Login successful")
