"""
Storefront Backend — Cloudinary Asset Host
============================================

What:  Concrete AssetHost storing images on Cloudinary.
Why:   The application servers are stateless; images are served from the
       Cloudinary CDN and only their URLs live in Mongo.
How:   The blocking Cloudinary SDK runs in a worker thread
       (`asyncio.to_thread`), wrapped in a tenacity retry and guarded by a
       process-wide upload circuit.
Who:   Instantiated once at import; used by the content services.
When:  After image normalization (upload) and on replace/delete (destroy).

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter for transient failures
    2. Upload circuit so a Cloudinary outage fails uploads instantly
    3. Upload failures are reported as None (→ UploadFailureError in the
       services); delete failures are logged and reported as False

Asset references:
    Cloudinary addresses assets by public id. Uploads are made without a
    folder, so the public id is the last URL path segment minus extension:

        https://res.cloudinary.com/demo/image/upload/v1712/abc123.jpg → abc123
"""

import asyncio
import logging
import math
import time
import uuid
from typing import Callable, Optional, Tuple
from urllib.parse import urlparse

import cloudinary
import cloudinary.api
import cloudinary.uploader
from tenacity import (
    before_sleep_log,
    retry,
    stop_after_attempt,
    wait_exponential_jitter,
)

from storefront.config import settings
from storefront.services.asset_base import AssetHost
from storefront.services.upload_source import NormalizedImage

logger = logging.getLogger(__name__)


def asset_ref_from_url(url: Optional[str]) -> Optional[str]:
    """Public id for an asset URL, or None when the URL has no usable segment."""
    if not url:
        return None
    segment = urlparse(url).path.rstrip("/").split("/")[-1]
    ref = segment.split(".")[0]
    return ref or None


# ══════════════════════════════════════════════════════════════════════════
# Upload Circuit
# ══════════════════════════════════════════════════════════════════════════

class UploadCircuit:
    """
    Circuit breaker fed only by upload outcomes.

    State Machine:
        CLOSED
            → every failed upload (after retries) increments `failures`
            → `failures` >= threshold: OPEN
        OPEN
            → uploads are skipped (reported as None, no SDK call)
            → after recovery_timeout seconds: HALF_OPEN on the next upload
        HALF_OPEN
            → exactly one trial upload goes out; others are skipped until
              it lands
            → trial succeeds: CLOSED; trial fails: OPEN again

    Deletes and health pings never change the state. A failed destroy
    leaves an orphaned asset; it says nothing about whether images can be
    stored. Deletes are skipped while OPEN.

    Not thread-safe; all calls happen on the event loop.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.clock = clock
        self.failures = 0
        self.state = self.CLOSED
        self.opened_at: Optional[float] = None
        self.trial_in_flight = False

    @property
    def is_open(self) -> bool:
        return self.state == self.OPEN

    def seconds_until_upload(self) -> int:
        """
        0 when an upload may be sent now, otherwise the seconds to wait.

        Claims the single HALF_OPEN trial slot when it returns 0 in that
        state; the caller must report the outcome.
        """
        if self.state == self.CLOSED:
            return 0

        if self.state == self.OPEN:
            elapsed = self.clock() - (self.opened_at or 0)
            if elapsed < self.recovery_timeout:
                return max(1, math.ceil(self.recovery_timeout - elapsed))
            logger.info("Upload circuit HALF_OPEN after %.1fs; sending one trial upload", elapsed)
            self.state = self.HALF_OPEN

        if self.trial_in_flight:
            return 1
        self.trial_in_flight = True
        return 0

    def upload_succeeded(self) -> None:
        if self.state != self.CLOSED:
            logger.info("Upload circuit CLOSED (Cloudinary accepted the trial upload)")
        self.failures = 0
        self.state = self.CLOSED
        self.opened_at = None
        self.trial_in_flight = False

    def upload_failed(self) -> None:
        self.failures += 1
        self.trial_in_flight = False

        if self.state == self.HALF_OPEN:
            logger.warning("Upload circuit back to OPEN (trial upload failed)")
        elif self.failures >= self.failure_threshold:
            logger.warning("Upload circuit OPEN after %d failed uploads", self.failures)
        else:
            return
        self.state = self.OPEN
        self.opened_at = self.clock()


# ══════════════════════════════════════════════════════════════════════════
# Cloudinary Asset Host
# ══════════════════════════════════════════════════════════════════════════

class CloudinaryAssetHost(AssetHost):
    """
    Cloudinary implementation of AssetHost.

    Error Handling Chain:
        SDK upload fails → tenacity retries (RETRY_MAX_ATTEMPTS, backoff)
        → All retries fail → upload circuit counts a failure → return None
        → Threshold reached → later uploads return None without calling out
        → Recovery timeout → one trial upload (HALF_OPEN)
        → Trial succeeds → uploads resume (CLOSED)
    """

    def __init__(self):
        if settings.cloudinary_cloud_name:
            cloudinary.config(
                cloud_name=settings.cloudinary_cloud_name,
                api_key=settings.cloudinary_api_key,
                api_secret=settings.cloudinary_api_secret,
                secure=True,
            )

        self.upload_circuit = UploadCircuit(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )
        # (checked_at, healthy) of the last Admin API ping
        self._last_ping: Optional[Tuple[float, bool]] = None

        logger.info(
            "CloudinaryAssetHost initialized for cloud=%s, "
            "upload_circuit(threshold=%d, recovery=%ds)",
            settings.cloudinary_cloud_name or "<unset>",
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def upload_file(self, image: NormalizedImage) -> Optional[str]:
        """
        Upload a normalized image and return its URL.

        Flow:
            1. Ask the upload circuit (open → None, no call made)
            2. Upload with retry
            3. Report the outcome to the circuit
        """
        request_id = str(uuid.uuid4())[:8]

        wait = self.upload_circuit.seconds_until_upload()
        if wait:
            logger.warning(
                "[%s] Upload of %s skipped, circuit %s (%ds left)",
                request_id,
                image.filename,
                self.upload_circuit.state,
                wait,
            )
            return None

        logger.info("[%s] Uploading %s to Cloudinary", request_id, image.filename)

        try:
            url = await self._upload_with_retry(image, request_id)
        except Exception as e:
            self.upload_circuit.upload_failed()
            logger.error(
                "[%s] Cloudinary upload failed after retries: %s",
                request_id,
                str(e),
            )
            return None

        if not url:
            self.upload_circuit.upload_failed()
            logger.error("[%s] Cloudinary response carried no URL", request_id)
            return None

        self.upload_circuit.upload_succeeded()
        return url

    @retry(
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _upload_with_retry(self, image: NormalizedImage, request_id: str) -> Optional[str]:
        """Single SDK upload attempt; tenacity re-runs it on any exception."""
        start_time = time.time()
        try:
            # payload() yields a fresh stream per attempt
            response = await asyncio.to_thread(
                cloudinary.uploader.upload,
                image.payload(),
                resource_type="image",
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "[%s] Cloudinary upload attempt failed after %.0fms: %s",
                request_id,
                duration_ms,
                str(e),
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        url = response.get("secure_url") or response.get("url")
        logger.info(
            "[%s] Cloudinary upload completed in %.0fms: public_id=%s",
            request_id,
            duration_ms,
            response.get("public_id"),
        )
        return url

    async def delete_file(self, asset_ref: str) -> bool:
        """Destroy one asset. Best effort: logs and returns False on failure."""
        if not asset_ref:
            logger.warning("Asset delete skipped: empty reference")
            return False

        if self.upload_circuit.is_open:
            logger.warning("Asset delete skipped for %s, Cloudinary considered down", asset_ref)
            return False

        try:
            response = await asyncio.to_thread(cloudinary.uploader.destroy, asset_ref)
        except Exception as e:
            logger.warning("Asset delete failed for %s: %s", asset_ref, str(e))
            return False

        result = (response or {}).get("result")
        if result != "ok":
            # "not found" is the usual case: the asset was already removed
            logger.warning("Asset delete for %s returned %s", asset_ref, result)
            return False

        logger.info("Asset deleted: %s", asset_ref)
        return True

    async def health_check(self) -> bool:
        """
        Ping the Cloudinary Admin API. False when unreachable or unconfigured.

        Admin API calls count against Cloudinary's hourly Admin API rate
        limit, so a result is reused for ASSET_HEALTH_TTL seconds; load
        balancer checks do not each cost a call.
        """
        if not settings.cloudinary_cloud_name:
            return False

        now = time.monotonic()
        if self._last_ping is not None and now - self._last_ping[0] < settings.asset_health_ttl:
            return self._last_ping[1]

        try:
            response = await asyncio.to_thread(cloudinary.api.ping)
            healthy = (response or {}).get("status") == "ok"
        except Exception as e:
            logger.warning("Cloudinary health check failed: %s", str(e))
            healthy = False

        self._last_ping = (now, healthy)
        return healthy


# ── Singleton Instance ────────────────────────────────────────────────────
# Holds the upload circuit state shared by every request
asset_service = CloudinaryAssetHost()
