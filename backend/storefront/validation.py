"""
Storefront Backend — Request Validation Helpers
=================================================

What:  Runs a pydantic schema over raw form/JSON values and converts failures
       into the application's ValidationError.
Why:   Admin forms are multipart (text fields + image files). FastAPI's own
       422 error list does not fit the envelope, and the frontend shows a
       single message, so only the first failing field is reported.
How:   `read_form_fields` separates text values from uploaded files;
       `validate_fields` validates and normalizes them in one step. Nothing is
       applied when any field fails.
"""

from typing import Any, Dict, Mapping, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import UploadFile
from starlette.requests import Request

from storefront.exceptions import ValidationError

M = TypeVar("M", bound=BaseModel)

# FastAPI prefixes request error locations with where the value came from
LOCATION_PREFIXES = ("body", "query", "path", "header")


def first_error_message(exc: PydanticValidationError) -> tuple:
    """
    Return (field, message) for the first error pydantic reported.

    The field is the wire name (camelCase alias) joined with dots for nested
    locations; the message is pydantic's rule description.
    """
    errors = exc.errors()
    if not errors:
        return None, "Validation failed"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in LOCATION_PREFIXES)
    msg = first.get("msg", "is invalid")
    if field:
        return field, f"{field}: {msg}"
    return None, msg


def validate_fields(schema: Type[M], raw: Mapping[str, Any]) -> M:
    """
    Validate `raw` against `schema`.

    Returns:
        The normalized model instance.

    Raises:
        ValidationError naming the first failing field (→ 400).
    """
    try:
        return schema.model_validate(dict(raw))
    except PydanticValidationError as e:
        field, message = first_error_message(e)
        raise ValidationError(message=message, field=field)


async def read_form_fields(request: Request) -> Dict[str, str]:
    """
    Collect the text fields of a multipart or urlencoded body.

    File parts are skipped; routes receive those as UploadFile parameters.
    Starlette caches the parsed form, so routes that also declare File()
    parameters do not parse the body twice.
    """
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        return {}
    form = await request.form()
    return {
        key: value
        for key, value in form.multi_items()
        if not isinstance(value, UploadFile)
    }


async def read_json_body(request: Request) -> Dict[str, Any]:
    """Parse a JSON object body; anything else is a ValidationError."""
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError(message="Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ValidationError(message="Request body must be a JSON object")
    return body


async def read_body_fields(request: Request) -> Dict[str, Any]:
    """
    Text fields of the request body, whatever its encoding.

    Admin forms post multipart; scripted clients may send JSON. Any other
    (or missing) content type yields no fields.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        return await read_json_body(request)
    return await read_form_fields(request)
