"""
Storefront Backend — Content Service (Asset/Document Choreography)
====================================================================

What:  Shared orchestration for every collection whose documents own images:
       products, categories, blogs and banners.
Why:   The database and the asset host are never committed atomically. The
       only protection is doing the steps in a fixed order, and that order
       is identical for all four collections.
How:   Subclasses declare their collection, resource name, image slots and
       response models; this base class runs the create/update/delete flows.

Orchestration Order:
    create:  pre-checks → required images present → MIME check (all files)
             → normalize + upload each → insert document
    update:  load document → MIME check → no-op guard → upload replacements
             → write diff → delete replaced assets
    delete:  load document → delete every owned asset → delete document

    ┌──────────┐   ┌────────────┐   ┌────────────┐   ┌──────────┐
    │ Validate │──▶│ Normalize  │──▶│ Cloudinary │──▶│  Mongo   │
    │ (Route)  │   │ (ImageSvc) │   │ (AssetSvc) │   │ (Store)  │
    └──────────┘   └────────────┘   └────────────┘   └──────────┘

    On a failed document write, assets uploaded by this request are deleted
    again. Asset deletions are best effort and never block the document
    mutation; orphaned assets are possible and accepted.

Design Decision:
    Services are stateless singletons receiving the database handle per call,
    so tests can pass an in-memory double and patch the asset host in one
    place (this module's `asset_service` / `image_service` names).
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Type

from pydantic import BaseModel
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError
from starlette.datastructures import UploadFile

from storefront.config import settings
from storefront.exceptions import (
    DuplicateError,
    NoOpError,
    UploadFailureError,
    ValidationError,
)
from storefront.models.store import DocumentStore, field_projection
from storefront.schemas.common import DocumentModel
from storefront.services.asset_service import asset_ref_from_url, asset_service
from storefront.services.image_service import image_service

logger = logging.getLogger(__name__)

# Image field → uploaded file (None when the part was not sent)
ImageFiles = Mapping[str, Optional[UploadFile]]


def _attached(files: Optional[ImageFiles], slots: Iterable[str]) -> Dict[str, UploadFile]:
    """Drop absent parts; browsers send an empty part for an untouched file input."""
    slots = set(slots)
    return {
        field: upload
        for field, upload in (files or {}).items()
        if field in slots and upload is not None and (upload.filename or upload.size)
    }


class ContentService:
    """
    Base class for image-owning content services.

    Class attributes set by subclasses:
        collection:       Mongo collection name
        resource:         Display name used in messages ("Product")
        image_fields:     Ordered image slots → label used in messages
        response_model:   Full-record response schema
        list_model:       Listing schema and its projected fields
        recent_model:     Recent-listing schema and its projected fields
        duplicate_message: Message when a unique index rejects a write
    """

    collection: str = ""
    resource: str = "Record"
    image_fields: Dict[str, str] = {}
    response_model: Type[DocumentModel] = DocumentModel
    list_model: Optional[Type[DocumentModel]] = None
    list_fields: Sequence[str] = ()
    recent_model: Optional[Type[DocumentModel]] = None
    recent_fields: Sequence[str] = ()
    duplicate_message: str = "Record already exists"

    def store(self, db: AsyncDatabase) -> DocumentStore:
        return DocumentStore(db, self.collection, self.resource)

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get(self, db: AsyncDatabase, record_id: str) -> DocumentModel:
        doc = await self.store(db).get_by_id(record_id)
        return self.response_model.from_document(doc)

    async def list_all(self, db: AsyncDatabase) -> List[DocumentModel]:
        """Every record, newest first, projected to the listing fields."""
        model = self.list_model or self.response_model
        projection = field_projection(self.list_fields) if self.list_fields else None
        docs = await self.store(db).list(projection=projection)
        return [model.from_document(doc) for doc in docs]

    async def list_recent(self, db: AsyncDatabase, n: Optional[int] = None) -> List[DocumentModel]:
        """The `n` newest records (default RECENT_LIMIT)."""
        model = self.recent_model or self.list_model or self.response_model
        projection = field_projection(self.recent_fields) if self.recent_fields else None
        docs = await self.store(db).list_recent(n or settings.recent_limit, projection=projection)
        return [model.from_document(doc) for doc in docs]

    # ── Create ────────────────────────────────────────────────────────────

    async def _create(
        self,
        db: AsyncDatabase,
        fields: Mapping[str, Any],
        files: Optional[ImageFiles],
    ) -> Dict[str, Any]:
        """
        Upload every required image, then insert the document.

        Raises:
            ValidationError:    a required image is missing
            InvalidFormatError: an image is not JPEG/PNG
            UploadFailureError: the asset host returned no URL
            DuplicateError:     a unique index rejected the insert
            PersistFailureError: the insert failed
        """
        attached = _attached(files, self.image_fields)
        for field, label in self.image_fields.items():
            if field not in attached:
                raise ValidationError(message=f"{label} is required", field=field)
        self._check_formats(attached)

        urls = await self._upload_images(attached)
        doc = dict(fields)
        doc.update(urls)
        try:
            return await self.store(db).create(doc)
        except DuplicateKeyError:
            await self._discard_images(urls.values())
            raise DuplicateError(message=self.duplicate_message)
        except Exception:
            await self._discard_images(urls.values())
            raise

    # ── Update ────────────────────────────────────────────────────────────

    async def update(
        self,
        db: AsyncDatabase,
        record_id: str,
        changes: Optional[BaseModel] = None,
        files: Optional[ImageFiles] = None,
    ) -> Dict[str, Any]:
        """
        Apply a partial update, replacing any attached images.

        The no-op guard runs before any upload: a request that changes no
        field and attaches no image fails with NoOpError without touching
        the asset host. Old assets are deleted only after the document
        points at their replacements.

        Returns:
            The updated document.
        """
        store = self.store(db)
        current = await store.get_by_id(record_id)

        attached = _attached(files, self.image_fields)
        self._check_formats(attached)

        candidate = changes.model_dump(exclude_none=True) if changes is not None else {}
        await self._before_update(db, current, candidate)
        if not store.diff(current, candidate) and not attached:
            raise NoOpError()

        new_urls = await self._upload_images(attached)
        try:
            updated = await store.update(
                current["_id"],
                candidate,
                replaced_images=new_urls,
                current=current,
            )
        except DuplicateKeyError:
            await self._discard_images(new_urls.values())
            raise DuplicateError(message=self.duplicate_message)
        except Exception:
            await self._discard_images(new_urls.values())
            raise

        await self._discard_images(
            current.get(field) for field in new_urls if current.get(field) != new_urls[field]
        )
        return updated

    async def _before_update(
        self,
        db: AsyncDatabase,
        current: Mapping[str, Any],
        changes: Mapping[str, Any],
    ) -> None:
        """Hook for business pre-checks on update (e.g. unique names)."""
        return None

    # ── Delete ────────────────────────────────────────────────────────────

    async def delete(self, db: AsyncDatabase, record_id: str) -> None:
        """Delete every owned asset (best effort), then the document."""
        store = self.store(db)
        current = await store.get_by_id(record_id)
        await self._discard_images(current.get(field) for field in self.image_fields)
        await store.delete(current["_id"])

    # ── Asset helpers ─────────────────────────────────────────────────────

    def _check_formats(self, attached: Mapping[str, UploadFile]) -> None:
        """Reject any non-JPEG/PNG attachment before the first upload."""
        for field, upload in attached.items():
            image_service.validate_mime_type(upload, self.image_fields.get(field, "Image"))

    async def _upload_images(self, attached: Mapping[str, UploadFile]) -> Dict[str, str]:
        """
        Upload attachments in slot order.

        If a later upload fails, the ones already stored are deleted again.
        """
        urls: Dict[str, str] = {}
        try:
            for field, label in self.image_fields.items():
                if field in attached:
                    urls[field] = await self._upload_image(attached[field], label)
        except Exception:
            await self._discard_images(urls.values())
            raise
        return urls

    async def _upload_image(self, upload: UploadFile, label: str) -> str:
        async with image_service.process_upload(upload, label) as image:
            url = await asset_service.upload_file(image)
        if not url:
            raise UploadFailureError(
                message=f"{label} upload failed",
                context={"resource": self.resource, "filename": upload.filename},
            )
        return url

    async def _discard_images(self, urls: Iterable[Optional[str]]) -> None:
        for url in urls:
            await self._discard_image(url)

    async def _discard_image(self, url: Optional[str]) -> bool:
        """Best-effort asset delete; never raises."""
        ref = asset_ref_from_url(url)
        if not ref:
            return False
        try:
            deleted = await asset_service.delete_file(ref)
        except Exception as e:
            logger.warning("Asset delete raised for %s: %s", ref, str(e))
            return False
        if not deleted:
            logger.warning("%s asset %s was not deleted", self.resource, ref)
        return deleted
