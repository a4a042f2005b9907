"""Unit tests for attachment storage."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import io
import pytest
from starlette.datastructures import Headers, UploadFile
from lpr_hub.config import settings
from lpr_hub.errors import ValidationError
from lpr_hub.services.upload_service import save_attachments, remove_attachments

JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 64 + b"\xff\xd9"


def upload(filename="pic.jpg", content_type="image/jpeg", data=JPEG):
    return UploadFile(file=io.BytesIO(data), filename=filename,
                      headers=Headers({"content-type": content_type}))


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    target = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(target))
    return target


class TestSaveAttachments:
    @pytest.mark.asyncio
    async def test_saves_each_role(self, upload_dir):
        stored = await save_attachments({
            "licensePlatePicture.jpg": upload(),
            "vehicleImage": upload(),
            "thumbnail": upload(),
        }, "AB-12 3")

        assert set(stored) == {"license_plate", "vehicle"}
        for role, name in stored.items():
            assert name.startswith("AB-12_3_")
            assert name.endswith(f"_{role}.jpg")
            assert (upload_dir / name).read_bytes() == JPEG

    @pytest.mark.asyncio
    async def test_non_jpeg_rejected_and_nothing_written(self, upload_dir):
        with pytest.raises(ValidationError):
            await save_attachments({
                "licensePlatePicture.jpg": upload(),
                "vehiclePicture.jpg": upload("v.png", "image/png"),
            }, "ABC123")
        assert not upload_dir.exists() or list(upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_oversized_rejected(self, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 10)
        with pytest.raises(ValidationError):
            await save_attachments({"detectionPicture.jpg": upload()}, "ABC123")

    @pytest.mark.asyncio
    async def test_suspicious_extension_replaced(self):
        stored = await save_attachments({"vehiclePicture.jpg": upload("x.j/../pg")}, "ABC123")
        assert stored["vehicle"].endswith("_vehicle.jpg")

    @pytest.mark.asyncio
    async def test_remove_attachments(self, upload_dir):
        stored = await save_attachments({"vehiclePicture.jpg": upload()}, "ABC123")
        remove_attachments(stored.values())
        remove_attachments(["never-existed.jpg"])
        assert list(upload_dir.iterdir()) == []
