import asyncio
import io
from typing import List, Optional

import pytest
from PIL import Image


class FakeOCREngine:
    """Stands in for Tesseract / OCR.space; records every call."""
    name = "fake"

    def __init__(self, text: str = "", error: Optional[Exception] = None,
                 max_image_bytes: Optional[int] = None):
        self.text = text
        self.error = error
        self.max_image_bytes = max_image_bytes
        self.calls: List[dict] = []

    async def recognize(self, image_bytes, *, filename="image.png", api_key=None):
        self.calls.append({"image_bytes": image_bytes, "filename": filename, "api_key": api_key})
        if self.error is not None:
            raise self.error
        return self.text


class GatedOCREngine:
    """Blocks on b"slow" images until released; echoes everything else."""
    name = "gated"
    max_image_bytes = None

    def __init__(self):
        self.release = asyncio.Event()

    async def recognize(self, image_bytes, *, filename="image.png", api_key=None):
        if image_bytes == b"slow":
            await self.release.wait()
        return image_bytes.decode()


@pytest.fixture
def png_bytes():
    buf = io.BytesIO()
    Image.new("RGB", (20, 10), "white").save(buf, "PNG")
    return buf.getvalue()
