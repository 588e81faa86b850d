"""
Tests for loading chat attachments and saving generated images.
"""

import base64
import io

import pytest
from PIL import Image

from services.image_attachment import load_image_attachment, save_data_url


class TestLoadImageAttachment:

    def test_small_image_is_sent_as_is(self, tmp_path):
        path = tmp_path / "small.png"
        Image.new("RGB", (10, 10), "red").save(path)

        attachment = load_image_attachment(path)

        assert attachment.mime_type == "image/png"
        assert base64.b64decode(attachment.data) == path.read_bytes()
        assert attachment.to_payload() == {"mimeType": "image/png", "data": attachment.data}

    def test_large_image_is_downscaled(self, tmp_path):
        path = tmp_path / "wide.jpg"
        Image.new("RGB", (3000, 1000), "blue").save(path, format="JPEG")

        attachment = load_image_attachment(path, max_size=(300, 300))

        assert attachment.mime_type == "image/jpeg"
        with Image.open(io.BytesIO(base64.b64decode(attachment.data))) as img:
            assert img.size == (300, 100)

    def test_non_image_is_rejected(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("not a picture")

        with pytest.raises(ValueError):
            load_image_attachment(path)

    def test_missing_file_is_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            load_image_attachment(tmp_path / "missing.png")


class TestSaveDataUrl:

    def test_writes_decoded_bytes(self, tmp_path):
        target = save_data_url("data:image/png;base64," + base64.b64encode(b"png-bytes").decode(), tmp_path / "out")

        assert target.suffix == ".png"
        assert target.read_bytes() == b"png-bytes"

    @pytest.mark.parametrize("value", ["https://example.org/cat.png", "data:image/png;base64,@@@"])
    def test_rejects_bad_uris(self, tmp_path, value):
        with pytest.raises(ValueError):
            save_data_url(value, tmp_path)
