import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from cocktail_menu.services.images import ImageRejected, ImageStorage
from tests.conftest import PNG_BYTES, uploaded_files


def make_upload(data: bytes, filename: str = "photo.PNG", content_type: str = "image/png") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def storage(tmp_path):
    store = ImageStorage(tmp_path / "uploads", max_bytes=1024)
    store.ensure_directory()
    return store


@pytest.mark.asyncio
async def test_save_writes_uniquely_named_file(storage):
    first = await storage.save(make_upload(PNG_BYTES))
    second = await storage.save(make_upload(PNG_BYTES))

    assert first.startswith("/uploads/")
    assert first.endswith(".png")
    assert first != second
    assert len(uploaded_files(storage.upload_dir)) == 2
    assert storage.resolve(first).read_bytes() == PNG_BYTES


@pytest.mark.asyncio
async def test_non_image_is_rejected_and_nothing_written(storage):
    with pytest.raises(ImageRejected):
        await storage.save(make_upload(b"#!/bin/sh", filename="run.sh", content_type="text/x-shellscript"))
    assert uploaded_files(storage.upload_dir) == []


@pytest.mark.asyncio
async def test_oversized_image_is_rejected(storage):
    with pytest.raises(ImageRejected):
        await storage.save(make_upload(b"\x00" * 1025))
    assert uploaded_files(storage.upload_dir) == []


@pytest.mark.asyncio
async def test_image_at_limit_is_accepted(storage):
    path = await storage.save(make_upload(b"\x00" * 1024))
    assert storage.resolve(path).stat().st_size == 1024


@pytest.mark.parametrize("original,ext", [
    ("photo.JPEG", ".jpeg"),
    ("photo.webp", ".webp"),
    ("no_extension", ".jpg"),
    ("weird.extension", ".jpg"),
    (None, ".jpg"),
])
def test_generate_filename_extension(original, ext):
    name = ImageStorage.generate_filename(original)
    assert name.endswith(ext)
    assert len(name) == 32 + len(ext)


def test_has_upload_ignores_empty_file_inputs():
    assert not ImageStorage.has_upload(None)
    assert not ImageStorage.has_upload(make_upload(b"", filename=""))
    assert ImageStorage.has_upload(make_upload(PNG_BYTES))


@pytest.mark.asyncio
async def test_delete_removes_file_once(storage):
    path = await storage.save(make_upload(PNG_BYTES))

    assert storage.delete(path) is True
    assert storage.delete(path) is False
    assert uploaded_files(storage.upload_dir) == []


def test_delete_is_confined_to_upload_dir(tmp_path, storage):
    outside = tmp_path / "precious.txt"
    outside.write_text("keep me")

    assert storage.delete("/uploads/../precious.txt") is False
    assert storage.delete("../precious.txt") is False
    assert storage.delete(None) is False
    assert storage.delete("") is False
    assert outside.exists()
