"""
Integration Tests for the Media API.

Uploads go to a tmp_path storage so thumbnails can be inspected on disk.
"""

import io

import pytest
from httpx import AsyncClient
from PIL import Image

from asof.backend.core.config import get_app_config


def _png_bytes(width: int = 640, height: int = 480) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (26, 61, 109)).save(buffer, "PNG")
    return buffer.getvalue()


async def _upload(client: AsyncClient, name: str, data: bytes, mime_type: str, **form):
    return await client.post(
        "/api/v1/media/upload",
        files={"file": (name, data, mime_type)},
        data=form,
    )


class TestUpload:
    """Tests for POST /api/v1/media/upload."""

    @pytest.mark.asyncio
    async def test_requires_login(self, client: AsyncClient, api):
        response = await _upload(client, "foto.png", _png_bytes(), "image/png")

        api.assert_error(response, 401, "AUTH_UNAUTHORIZED")

    @pytest.mark.asyncio
    async def test_png_upload_records_dimensions_and_thumbnail(
        self, client: AsyncClient, api, as_admin, storage,
    ):
        response = await _upload(
            client, "Foto da Assembleia.PNG", _png_bytes(), "image/png",
            alt="Plenário", title="Assembleia",
        )

        data = api.assert_success(response, expected_status=201)
        media = data["data"]
        assert media["type"] == "IMAGE"
        assert media["original_name"] == "Foto da Assembleia.PNG"
        assert media["file_name"].endswith(".png")
        assert media["url"] == f"/uploads/{media['file_name']}"
        assert (media["width"], media["height"]) == (640, 480)
        assert media["alt"] == "Plenário"
        assert media["uploaded_by_id"] == as_admin.id

        stem = media["file_name"].rsplit(".", 1)[0]
        assert media["thumbnail_url"] == f"/uploads/thumb-{stem}.jpg"

        assert (storage.root / media["file_name"]).exists()
        thumb_path = storage.root / f"thumb-{stem}.jpg"
        with Image.open(thumb_path) as thumb:
            thumb_config = get_app_config().storage.thumbnail
            assert thumb.size == (thumb_config.width, thumb_config.height)
            assert thumb.format == "JPEG"

    @pytest.mark.asyncio
    async def test_pdf_upload_has_no_thumbnail(self, client: AsyncClient, api, as_admin):
        response = await _upload(client, "ata.pdf", b"%PDF-1.4 minimal", "application/pdf")

        data = api.assert_success(response, expected_status=201)
        assert data["data"]["type"] == "DOCUMENT"
        assert data["data"]["thumbnail_url"] is None
        assert data["data"]["width"] is None

    @pytest.mark.asyncio
    async def test_corrupt_image_is_stored_without_thumbnail(self, client: AsyncClient, api, as_admin):
        response = await _upload(client, "quebrada.png", b"not really a png", "image/png")

        data = api.assert_success(response, expected_status=201)
        assert data["data"]["thumbnail_url"] is None
        assert data["data"]["width"] is None

    @pytest.mark.asyncio
    async def test_disallowed_type_rejected(self, client: AsyncClient, api, as_admin):
        response = await _upload(client, "script.sh", b"echo oi", "application/x-sh")

        data = api.assert_error(response, 400, "VAL_VALIDATION_ERROR")
        assert data["error"]["details"]["mime_type"] == "application/x-sh"

    @pytest.mark.asyncio
    async def test_empty_file_rejected(self, client: AsyncClient, api, as_admin):
        response = await _upload(client, "vazio.png", b"", "image/png")

        api.assert_error(response, 400, "VAL_VALIDATION_ERROR")

    @pytest.mark.asyncio
    async def test_file_over_limit_rejected(
        self, client: AsyncClient, api, as_admin, storage, monkeypatch,
    ):
        monkeypatch.setattr(get_app_config().storage, "max_file_size_bytes", 1024)

        response = await _upload(client, "ata.pdf", b"%PDF" + b"0" * 2044, "application/pdf")

        data = api.assert_error(response, 413, "VAL_PAYLOAD_TOO_LARGE")
        assert data["error"]["details"]["max_size_bytes"] == 1024
        assert data["error"]["details"]["size"] == 2048
        assert not storage.root.exists() or list(storage.root.iterdir()) == []


class TestLibrary:
    """Tests for listing, reading, editing and deleting media."""

    @pytest.mark.asyncio
    async def test_list_with_filter_and_stats(self, client: AsyncClient, api, as_admin):
        await _upload(client, "foto.png", _png_bytes(32, 32), "image/png")
        await _upload(client, "ata.pdf", b"%PDF-1.4", "application/pdf")

        response = await client.get("/api/v1/media")

        data = api.assert_success(response)["data"]
        assert data["total"] == 2
        assert data["has_more"] is False
        assert data["stats"]["IMAGE"]["count"] == 1
        assert data["stats"]["DOCUMENT"]["total_size"] == len(b"%PDF-1.4")

        response = await client.get("/api/v1/media", params={"type": "document"})
        data = api.assert_success(response)["data"]
        assert [item["original_name"] for item in data["items"]] == ["ata.pdf"]

    @pytest.mark.asyncio
    async def test_search_by_name(self, client: AsyncClient, api, as_admin):
        await _upload(client, "assembleia.pdf", b"%PDF-1.4", "application/pdf")
        await _upload(client, "convenio.pdf", b"%PDF-1.4", "application/pdf")

        response = await client.get("/api/v1/media", params={"search": "conv"})

        data = api.assert_success(response)["data"]
        assert [item["original_name"] for item in data["items"]] == ["convenio.pdf"]

    @pytest.mark.asyncio
    async def test_sort_by_size(self, client: AsyncClient, api, as_admin):
        await _upload(client, "grande.pdf", b"x" * 300, "application/pdf")
        await _upload(client, "pequeno.pdf", b"x" * 10, "application/pdf")

        response = await client.get("/api/v1/media", params={"sort": "size-asc"})

        data = api.assert_success(response)["data"]
        assert [item["original_name"] for item in data["items"]] == ["pequeno.pdf", "grande.pdf"]

    @pytest.mark.asyncio
    async def test_unknown_type_filter_rejected(self, client: AsyncClient, api, as_admin):
        response = await client.get("/api/v1/media", params={"type": "SPREADSHEET"})

        api.assert_error(response, 400, "VAL_VALIDATION_ERROR")

    @pytest.mark.asyncio
    async def test_update_metadata(self, client: AsyncClient, api, as_admin):
        uploaded = api.assert_success(
            await _upload(client, "ata.pdf", b"%PDF-1.4", "application/pdf"),
            expected_status=201,
        )["data"]

        response = await client.patch(
            f"/api/v1/media/{uploaded['id']}",
            json={"caption": "Ata da reunião", "file_name": "hack.pdf"},
        )

        data = api.assert_success(response)["data"]
        assert data["caption"] == "Ata da reunião"
        assert data["file_name"] == uploaded["file_name"]

    @pytest.mark.asyncio
    async def test_update_without_editable_fields_rejected(self, client: AsyncClient, api, as_admin):
        uploaded = api.assert_success(
            await _upload(client, "ata.pdf", b"%PDF-1.4", "application/pdf"),
            expected_status=201,
        )["data"]

        response = await client.patch(f"/api/v1/media/{uploaded['id']}", json={"url": "/x"})

        api.assert_error(response, 400, "VAL_VALIDATION_ERROR")

    @pytest.mark.asyncio
    async def test_delete_removes_files(self, client: AsyncClient, api, as_admin, storage):
        uploaded = api.assert_success(
            await _upload(client, "foto.png", _png_bytes(), "image/png"),
            expected_status=201,
        )["data"]
        thumb_name = storage.name_from_url(uploaded["thumbnail_url"])
        assert (storage.root / thumb_name).exists()

        response = await client.delete(f"/api/v1/media/{uploaded['id']}")

        api.assert_success(response)
        assert not (storage.root / uploaded["file_name"]).exists()
        assert not (storage.root / thumb_name).exists()

        missing = await client.get(f"/api/v1/media/{uploaded['id']}")
        api.assert_error(missing, 404, "RES_NOT_FOUND")

        listing = api.assert_success(await client.get("/api/v1/media"))["data"]
        assert listing["total"] == 0
