"""
Storefront Backend — Shared Schemas
=====================================

What:  The response envelope, camelCase base models and operational responses.
Why:   Every endpoint answers with the same `{status, data, message}` shape,
       success or failure, so the admin frontend parses one structure only.
How:   `ApiResponse[T]` is a generic pydantic model; FastAPI uses the
       parametrized form as `response_model` so OpenAPI documents each payload.

Naming convention:
    Mongo documents use snake_case keys (`selling_price`), the HTTP surface
    uses camelCase (`sellingPrice`). `CamelModel` bridges the two with an alias
    generator; `populate_by_name` lets services build models from documents.
"""

from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for every request/response body exchanged in camelCase."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
    }


class DocumentModel(CamelModel):
    """
    Base for response models built from Mongo documents.

    What:  Exposes the document `_id` (an ObjectId) as the string `id`.
    Why:   ObjectId is not JSON-serializable and `_id` is a driver detail.
    """

    id: str = Field(description="Document identifier (24-char hex ObjectId)")

    @model_validator(mode="before")
    @classmethod
    def _map_object_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and "_id" in data:
            data = dict(data)
            data["id"] = str(data.pop("_id"))
        return data

    @classmethod
    def from_document(cls, doc: dict):
        return cls.model_validate(doc)


class TimestampedModel(DocumentModel):
    created_at: Optional[datetime] = Field(default=None, description="Creation time (UTC)")
    updated_at: Optional[datetime] = Field(default=None, description="Last update time (UTC)")


class ApiResponse(BaseModel, Generic[T]):
    """
    What:  The uniform response envelope.

    Fields:
        status:  HTTP status code, mirrored in the response status line
        data:    Payload on success, null on failure
        message: Human-readable outcome, safe to show to users

    Example:
        {"status": 400, "data": null, "message": "Category already exists"}
    """

    status: int = Field(description="HTTP status code")
    data: Optional[T] = Field(default=None, description="Response payload")
    message: str = Field(description="Human-readable outcome")


class CountsResponse(CamelModel):
    """Dashboard snapshot of collection sizes."""

    product_count: int
    blog_count: int
    category_count: int
    banner_count: int


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.
    Who:   Returned by GET /health for monitoring and load balancer checks.
    """

    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    asset_host: str = Field(description="Asset host status: available, unavailable, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
