"""
Storefront Backend — User Schemas
===================================

What:  Login request and the public user shape.
Why:   The stored password hash must never be serialized; UserResponse simply
       has no field for it.
"""

from pydantic import EmailStr, Field

from storefront.schemas.common import CamelModel, TimestampedModel


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserResponse(TimestampedModel):
    email: str
