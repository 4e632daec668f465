import asyncio
import io
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional, Protocol

import httpx
import pytesseract
from PIL import Image

from .config import MAX_UPLOAD_BYTES, OCR_SPACE_URL, resolve_api_key

logger = logging.getLogger("uvicorn")


# --- Errors ---

class OCRError(Exception):
    """Base for every failure the OCR pipeline recovers from."""
    kind = "ocr"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class FileTooLargeError(OCRError):
    kind = "validation"


class OCRTransportError(OCRError):
    kind = "transport"


class OCRProcessingError(OCRError):
    kind = "processing"


class NoTextDetectedError(OCRError):
    kind = "empty"

    def __init__(self, message: str = "No text detected"):
        super().__init__(message)


class OCREngineError(OCRError):
    kind = "engine"

    def __init__(self, message: str = "OCR failed"):
        super().__init__(message)


class OCRSupersededError(OCRError):
    kind = "superseded"

    def __init__(self, message: str = "Superseded by a newer upload"):
        super().__init__(message)


# --- Port ---

class OCREngine(Protocol):
    """
    OCR engine interface (port).
    Implementations accept image bytes and return plain text, raising OCRError on failure.
    max_image_bytes is the largest accepted upload, or None for no limit.
    """
    name: str
    max_image_bytes: Optional[int]

    async def recognize(self, image_bytes: bytes, *, filename: str = "image.png",
                        api_key: Optional[str] = None) -> str:
        ...


# --- Adapters ---

class TesseractOCREngine:
    """
    Local Tesseract engine. Recognition is CPU-bound, so it runs in a thread pool
    to keep the event loop free.
    """
    name = "local"
    max_image_bytes: Optional[int] = None

    def __init__(self, lang: str = "eng", tesseract_cmd: Optional[str] = None,
                 executor: Optional[ThreadPoolExecutor] = None):
        self.lang = lang
        self._executor = executor
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        logger.info(f"TesseractOCREngine initialized with lang={self.lang}")

    def _recognize_sync(self, image_bytes: bytes) -> str:
        with Image.open(io.BytesIO(image_bytes)) as img:
            return pytesseract.image_to_string(img, lang=self.lang)

    async def recognize(self, image_bytes: bytes, *, filename: str = "image.png",
                        api_key: Optional[str] = None) -> str:
        try:
            return await asyncio.get_running_loop().run_in_executor(
                self._executor, self._recognize_sync, image_bytes
            )
        except Exception as e:
            logger.error(f"Tesseract recognize() failed for {filename}: {e}")
            raise OCREngineError() from e


class OCRSpaceEngine:
    """
    Remote OCR.space engine. The image goes out as multipart form data together
    with fixed recognition parameters and the resolved API key.
    """
    name = "remote"

    def __init__(
        self,
        url: str = OCR_SPACE_URL,
        *,
        api_key: Optional[str] = None,
        language: str = "eng",
        max_image_bytes: Optional[int] = MAX_UPLOAD_BYTES,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.api_key = api_key
        self.language = language
        self.max_image_bytes = max_image_bytes
        self.timeout = timeout
        self._transport = transport

    def form_fields(self, api_key: Optional[str] = None) -> dict:
        return {
            "language": self.language,
            "isOverlayRequired": "false",
            "detectOrientation": "true",
            "isTable": "false",
            "OCREngine": "2",
            "apikey": resolve_api_key(api_key, self.api_key),
        }

    async def recognize(self, image_bytes: bytes, *, filename: str = "image.png",
                        api_key: Optional[str] = None) -> str:
        files = {"file": (filename, image_bytes)}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, data=self.form_fields(api_key), files=files)
        except httpx.HTTPError as e:
            logger.error(f"OCR.space request failed: {e}")
            raise OCRTransportError("OCR service request failed") from e

        if not response.is_success:
            logger.error(f"OCR.space returned HTTP {response.status_code}")
            raise OCRTransportError(f"OCR service request failed (HTTP {response.status_code})")

        try:
            payload = response.json()
        except ValueError as e:
            raise OCRTransportError("OCR service returned an invalid response") from e

        return self.parse_response(payload)

    @staticmethod
    def parse_response(payload: Any) -> str:
        """
        Extract ParsedText from an OCR.space JSON response.
        ErrorMessage may be a string or a list of strings.
        """
        if not isinstance(payload, dict):
            raise OCRTransportError("OCR service returned an invalid response")

        if payload.get("IsErroredOnProcessing"):
            message = payload.get("ErrorMessage") or "OCR processing failed"
            if isinstance(message, list):
                message = " ".join(str(m) for m in message) or "OCR processing failed"
            raise OCRProcessingError(str(message))

        results = payload.get("ParsedResults")
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            raise NoTextDetectedError()
        text = results[0].get("ParsedText")
        if not isinstance(text, str) or not text:
            raise NoTextDetectedError()
        return text
