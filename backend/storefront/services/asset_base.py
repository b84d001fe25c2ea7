"""
Storefront Backend — Abstract Asset Host Interface
====================================================

What:  Abstract base class for the remote store that hosts product, blog,
       category and banner images.
Why:   The services only need "upload, get a URL back" and "delete by ref".
       Keeping that behind an interface lets tests substitute a mock and keeps
       Cloudinary specifics in one module.
How:   Concrete implementations inherit from AssetHost and implement all three
       methods.
Who:   Called by the content services during create/update/delete.
When:  After image normalization (upload), after a confirmed replacement or
       before a document delete (delete).
"""

from abc import ABC, abstractmethod
from typing import Optional

from storefront.services.upload_source import NormalizedImage


class AssetHost(ABC):
    """
    Abstract interface for remote image storage.

    Contract:
        - upload_file() returns a public URL, or None when the upload failed
          for any reason. It never raises for upstream failures.
        - delete_file() is best effort: failures are logged and reported as
          False, never raised.
        - Callers treat None from upload_file() as an upload failure and never
          persist it.

    Implementations:
        - CloudinaryAssetHost (default)
    """

    @abstractmethod
    async def upload_file(self, image: NormalizedImage) -> Optional[str]:
        """
        Upload a normalized image.

        Args:
            image: Resized JPEG from ImageService.process_upload()

        Returns:
            The public URL of the stored asset, or None on failure.
        """
        ...

    @abstractmethod
    async def delete_file(self, asset_ref: str) -> bool:
        """
        Delete a stored asset by its reference (public id).

        Returns:
            True if the host confirmed the deletion, False otherwise.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight reachability check used by GET /health."""
        ...
