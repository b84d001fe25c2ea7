"""
Storefront Backend — Product Service Unit Tests
=================================================

What:  Tests for the create/update/delete choreography on products, with
       the asset host mocked and the in-memory database double.

What we test:
    ✅ Both images uploaded before the document is written
    ✅ Missing or invalid images fail before any upload
    ✅ A failed second upload deletes the first asset and writes nothing
    ✅ Single-field update leaves every other field untouched
    ✅ Replacing an image deletes only the old asset for that slot
    ✅ Delete removes every asset, even when the host refuses
"""

from unittest.mock import AsyncMock

import pytest
from bson import ObjectId

from storefront.exceptions import (
    InvalidFormatError,
    NoOpError,
    NotFoundError,
    UploadFailureError,
    ValidationError,
)
from storefront.schemas.product import ProductCreate, ProductUpdate
from storefront.services.product_service import product_service

PRODUCT = {
    "name": "Trail Runner",
    "productDetail": "Lightweight trail running shoe",
    "affiliateLink": "https://example.com/p/trail-runner",
    "category": "Shoes",
    "quantity": 5,
    "amount": 120,
    "discount": 10,
    "sellingPrice": 108,
    "isPublic": True,
}


@pytest.fixture
def data():
    return ProductCreate.model_validate(PRODUCT)


@pytest.fixture
def files(make_upload):
    return {
        "thumbnail": make_upload(filename="thumb.jpg"),
        "big_image": make_upload(filename="big.png", content_type="image/png"),
    }


class TestCreate:

    @pytest.mark.asyncio
    async def test_create_uploads_then_writes(self, fake_db, mock_asset_host, data, files):
        product = await product_service.create(fake_db, data, files)

        assert product.name == "Trail Runner"
        assert mock_asset_host.upload_file.await_count == 2
        stored = fake_db["products"].docs[0]
        assert stored["thumbnail"].endswith("asset1.jpg")
        assert stored["big_image"].endswith("asset2.jpg")
        assert stored["selling_price"] == 108

    @pytest.mark.asyncio
    async def test_missing_big_image(self, fake_db, mock_asset_host, data, files):
        files["big_image"] = None

        with pytest.raises(ValidationError) as exc_info:
            await product_service.create(fake_db, data, files)

        assert exc_info.value.message == "Big image is required"
        mock_asset_host.upload_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_type_rejected_before_any_upload(self, fake_db, mock_asset_host, data, files, make_upload):
        files["big_image"] = make_upload(filename="anim.gif", content_type="image/gif")

        with pytest.raises(InvalidFormatError) as exc_info:
            await product_service.create(fake_db, data, files)

        assert exc_info.value.message == "Big image invalid image format"
        mock_asset_host.upload_file.assert_not_awaited()
        assert fake_db["products"].docs == []

    @pytest.mark.asyncio
    async def test_second_upload_failure_discards_first(self, fake_db, mock_asset_host, data, files):
        mock_asset_host.upload_file.side_effect = [
            "https://res.cloudinary.com/test-cloud/image/upload/v1/first.jpg",
            None,
        ]

        with pytest.raises(UploadFailureError) as exc_info:
            await product_service.create(fake_db, data, files)

        assert exc_info.value.message == "Big image upload failed"
        mock_asset_host.delete_file.assert_awaited_once_with("first")
        assert fake_db["products"].docs == []


class TestUpdate:

    @pytest.mark.asyncio
    async def test_single_field_update(self, fake_db, mock_asset_host, data, files):
        created = await product_service.create(fake_db, data, files)
        before = dict(fake_db["products"].docs[0])

        updated = await product_service.update(
            fake_db, created.id, ProductUpdate.model_validate({"sellingPrice": 42})
        )

        assert str(updated["_id"]) == created.id
        after = fake_db["products"].docs[0]
        assert after["selling_price"] == 42
        for key in before:
            if key not in ("selling_price", "updated_at"):
                assert after[key] == before[key]
        mock_asset_host.delete_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_replace_thumbnail_deletes_old_one(self, fake_db, mock_asset_host, data, files, make_upload):
        created = await product_service.create(fake_db, data, files)

        updated = await product_service.update(
            fake_db, created.id, ProductUpdate(), {"thumbnail": make_upload(), "big_image": None}
        )

        assert updated["thumbnail"].endswith("asset3.jpg")
        assert updated["big_image"].endswith("asset2.jpg")
        mock_asset_host.delete_file.assert_awaited_once_with("asset1")

    @pytest.mark.asyncio
    async def test_no_changes_is_noop_without_upload(self, fake_db, mock_asset_host, data, files):
        created = await product_service.create(fake_db, data, files)
        mock_asset_host.upload_file.reset_mock()

        with pytest.raises(NoOpError):
            await product_service.update(
                fake_db, created.id, ProductUpdate.model_validate({"name": "Trail Runner"})
            )
        mock_asset_host.upload_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_unknown_product(self, fake_db, mock_asset_host):
        with pytest.raises(NotFoundError):
            await product_service.update(
                fake_db, str(ObjectId()), ProductUpdate.model_validate({"sellingPrice": 1})
            )


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_removes_both_assets(self, fake_db, mock_asset_host, data, files):
        created = await product_service.create(fake_db, data, files)

        await product_service.delete(fake_db, created.id)

        refs = [c.args[0] for c in mock_asset_host.delete_file.await_args_list]
        assert refs == ["asset1", "asset2"]
        assert fake_db["products"].docs == []

    @pytest.mark.asyncio
    async def test_delete_proceeds_when_host_fails(self, fake_db, mock_asset_host, data, files):
        created = await product_service.create(fake_db, data, files)
        mock_asset_host.delete_file = AsyncMock(side_effect=[False, ConnectionError("down")])

        await product_service.delete(fake_db, created.id)

        assert mock_asset_host.delete_file.await_count == 2
        assert fake_db["products"].docs == []


class TestReads:

    @pytest.mark.asyncio
    async def test_list_projection(self, fake_db, mock_asset_host, data, files):
        await product_service.create(fake_db, data, files)

        items = await product_service.list_all(fake_db)
        dumped = items[0].model_dump(by_alias=True)

        assert set(dumped) == {
            "id", "name", "category", "thumbnail", "amount", "discount", "sellingPrice", "isPublic",
        }

    @pytest.mark.asyncio
    async def test_recent_is_capped(self, fake_db, mock_asset_host, data, make_upload):
        for _ in range(5):
            await product_service.create(
                fake_db, data, {"thumbnail": make_upload(), "big_image": make_upload()}
            )

        recent = await product_service.list_recent(fake_db)
        assert len(recent) == 4
        assert set(recent[0].model_dump(by_alias=True)) == {
            "id", "name", "thumbnail", "affiliateLink", "sellingPrice",
        }

    @pytest.mark.asyncio
    async def test_empty_list(self, fake_db):
        assert await product_service.list_all(fake_db) == []
