"""
Storefront Backend — Asset Service Unit Tests (Mocked)
========================================================

What:  Tests for the Cloudinary asset host with the SDK patched out.
Why:   Tests must not call Cloudinary (network, credentials, quota).

What we test:
    ✅ Upload circuit state machine
    ✅ Successful upload returns the secure URL
    ✅ Failed uploads are retried, then reported as None
    ✅ Open circuit skips the SDK entirely
    ✅ Deletes are best effort (False, never raised) and never trip the circuit
    ✅ Admin API pings are cached
    ✅ Public id extraction from asset URLs
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from storefront.config import settings
from storefront.services.asset_service import (
    CloudinaryAssetHost,
    UploadCircuit,
    asset_ref_from_url,
)
from storefront.services.upload_source import NormalizedImage


@pytest.fixture
def host(monkeypatch):
    # No real backoff between attempts
    monkeypatch.setattr(CloudinaryAssetHost._upload_with_retry.retry, "sleep", AsyncMock())
    return CloudinaryAssetHost()


@pytest.fixture
def image():
    return NormalizedImage(filename="resized-photo.jpg", width=10, height=10, content=b"\xff\xd8jpeg")


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestUploadCircuit:
    """Tests for the upload circuit state machine."""

    def test_initial_state_is_closed(self):
        circuit = UploadCircuit(failure_threshold=5, recovery_timeout=60)
        assert circuit.state == "closed"
        assert circuit.seconds_until_upload() == 0

    def test_stays_closed_under_threshold(self):
        circuit = UploadCircuit(failure_threshold=5, recovery_timeout=60)
        for _ in range(4):
            circuit.upload_failed()
        assert circuit.state == "closed"
        assert circuit.seconds_until_upload() == 0

    def test_opens_at_threshold(self):
        clock = FakeClock()
        circuit = UploadCircuit(failure_threshold=2, recovery_timeout=60, clock=clock)
        circuit.upload_failed()
        circuit.upload_failed()

        assert circuit.is_open
        clock.now += 15
        assert circuit.seconds_until_upload() == 45

    def test_single_trial_after_recovery_timeout(self):
        clock = FakeClock()
        circuit = UploadCircuit(failure_threshold=2, recovery_timeout=60, clock=clock)
        circuit.upload_failed()
        circuit.upload_failed()
        clock.now += 61

        assert circuit.seconds_until_upload() == 0
        assert circuit.state == "half_open"
        # A second upload waits for the trial to land
        assert circuit.seconds_until_upload() > 0

    def test_trial_success_closes(self):
        clock = FakeClock()
        circuit = UploadCircuit(failure_threshold=2, recovery_timeout=60, clock=clock)
        circuit.upload_failed()
        circuit.upload_failed()
        clock.now += 61
        circuit.seconds_until_upload()

        circuit.upload_succeeded()

        assert circuit.state == "closed"
        assert circuit.failures == 0
        assert circuit.seconds_until_upload() == 0

    def test_trial_failure_reopens(self):
        clock = FakeClock()
        circuit = UploadCircuit(failure_threshold=2, recovery_timeout=60, clock=clock)
        circuit.upload_failed()
        circuit.upload_failed()
        clock.now += 61
        circuit.seconds_until_upload()

        circuit.upload_failed()

        assert circuit.is_open
        assert circuit.seconds_until_upload() == 60


class TestUpload:

    @pytest.mark.asyncio
    async def test_upload_returns_secure_url(self, host, image):
        response = {
            "public_id": "abc123",
            "secure_url": "https://res.cloudinary.com/test-cloud/image/upload/v1/abc123.jpg",
            "url": "http://res.cloudinary.com/test-cloud/image/upload/v1/abc123.jpg",
        }
        with patch("cloudinary.uploader.upload", MagicMock(return_value=response)) as upload:
            url = await host.upload_file(image)

        assert url == response["secure_url"]
        upload.assert_called_once()
        assert upload.call_args.kwargs["resource_type"] == "image"
        assert host.upload_circuit.failures == 0

    @pytest.mark.asyncio
    async def test_upload_failure_is_retried_then_none(self, host, image):
        with patch("cloudinary.uploader.upload", MagicMock(side_effect=ConnectionError("down"))) as upload:
            url = await host.upload_file(image)

        assert url is None
        assert upload.call_count == 2  # RETRY_MAX_ATTEMPTS in conftest
        assert host.upload_circuit.failures == 1

    @pytest.mark.asyncio
    async def test_transient_failure_recovers(self, host, image):
        responses = [TimeoutError("slow"), {"secure_url": "https://cdn.example/x.jpg"}]
        with patch("cloudinary.uploader.upload", MagicMock(side_effect=responses)):
            url = await host.upload_file(image)

        assert url == "https://cdn.example/x.jpg"

    @pytest.mark.asyncio
    async def test_response_without_url_is_failure(self, host, image):
        with patch("cloudinary.uploader.upload", MagicMock(return_value={"error": "rejected"})):
            assert await host.upload_file(image) is None
        assert host.upload_circuit.failures == 1

    @pytest.mark.asyncio
    async def test_open_circuit_skips_sdk(self, host, image):
        host.upload_circuit = UploadCircuit(failure_threshold=2, recovery_timeout=60)
        host.upload_circuit.upload_failed()
        host.upload_circuit.upload_failed()

        with patch("cloudinary.uploader.upload") as upload:
            assert await host.upload_file(image) is None
        upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_each_attempt_gets_fresh_payload(self, host, image):
        seen = []

        def _upload(payload, **kwargs):
            seen.append(payload.read())
            if len(seen) == 1:
                raise ConnectionError("reset")
            return {"secure_url": "https://cdn.example/y.jpg"}

        with patch("cloudinary.uploader.upload", MagicMock(side_effect=_upload)):
            await host.upload_file(image)

        assert seen == [b"\xff\xd8jpeg", b"\xff\xd8jpeg"]


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_ok(self, host):
        with patch("cloudinary.uploader.destroy", MagicMock(return_value={"result": "ok"})) as destroy:
            assert await host.delete_file("abc123") is True
        destroy.assert_called_once_with("abc123")

    @pytest.mark.asyncio
    async def test_delete_not_found_is_false(self, host):
        with patch("cloudinary.uploader.destroy", MagicMock(return_value={"result": "not found"})):
            assert await host.delete_file("gone") is False

    @pytest.mark.asyncio
    async def test_delete_error_is_swallowed(self, host):
        with patch("cloudinary.uploader.destroy", MagicMock(side_effect=ConnectionError("down"))):
            assert await host.delete_file("abc123") is False

    @pytest.mark.asyncio
    async def test_empty_ref_not_sent(self, host):
        with patch("cloudinary.uploader.destroy") as destroy:
            assert await host.delete_file("") is False
        destroy.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_deletes_never_open_circuit(self, host):
        with patch("cloudinary.uploader.destroy", MagicMock(side_effect=ConnectionError("down"))):
            for _ in range(10):
                await host.delete_file("abc123")

        assert host.upload_circuit.state == "closed"
        assert host.upload_circuit.failures == 0

    @pytest.mark.asyncio
    async def test_open_circuit_skips_destroy(self, host):
        host.upload_circuit = UploadCircuit(failure_threshold=2, recovery_timeout=60)
        host.upload_circuit.upload_failed()
        host.upload_circuit.upload_failed()

        with patch("cloudinary.uploader.destroy") as destroy:
            assert await host.delete_file("abc123") is False
        destroy.assert_not_called()


class TestHealthCheck:

    @pytest.mark.asyncio
    async def test_ping_ok(self, host):
        with patch("cloudinary.api.ping", MagicMock(return_value={"status": "ok"})):
            assert await host.health_check() is True

    @pytest.mark.asyncio
    async def test_ping_failure(self, host):
        with patch("cloudinary.api.ping", MagicMock(side_effect=Exception("401 unauthorized"))):
            assert await host.health_check() is False

    @pytest.mark.asyncio
    async def test_ping_result_is_reused(self, host):
        with patch("cloudinary.api.ping", MagicMock(return_value={"status": "ok"})) as ping:
            for _ in range(5):
                assert await host.health_check() is True
        ping.assert_called_once()

    @pytest.mark.asyncio
    async def test_ping_repeated_after_ttl(self, host, monkeypatch):
        monkeypatch.setattr(settings, "asset_health_ttl", 60)
        with patch("cloudinary.api.ping", MagicMock(return_value={"status": "ok"})):
            await host.health_check()
        checked_at, _ = host._last_ping
        host._last_ping = (checked_at - 61, True)

        with patch("cloudinary.api.ping", MagicMock(side_effect=Exception("rate limited"))) as ping:
            assert await host.health_check() is False
        ping.assert_called_once()


class TestAssetRef:

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://res.cloudinary.com/demo/image/upload/v1712/abc123.jpg", "abc123"),
            ("http://res.cloudinary.com/demo/image/upload/abc123.png", "abc123"),
            ("https://res.cloudinary.com/demo/image/upload/v1/abc123", "abc123"),
            ("https://res.cloudinary.com/demo/image/upload/v1/abc123.jpg?_a=1", "abc123"),
            ("", None),
            (None, None),
        ],
    )
    def test_public_id_from_url(self, url, expected):
        assert asset_ref_from_url(url) == expected
