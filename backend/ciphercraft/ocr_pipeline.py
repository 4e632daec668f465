import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Optional

from .cipher_engine import SubstitutionCipher, cipher as default_cipher
from .ocr_engines import FileTooLargeError, OCREngine, OCRError, OCRSupersededError
from .task_slot import OCRTaskSlot

logger = logging.getLogger("uvicorn")

ERROR_PREFIX = "Error: "
_LINE_BREAKS = re.compile(r"[\r\n]+")


@dataclass
class OCRResult:
    """Raw engine output for one upload: text on success, error otherwise."""
    text: str = ""
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class PipelineResult:
    ocr_text: Optional[str] = None
    decrypted_text: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    superseded: bool = False

    @classmethod
    def failure(cls, message: str, kind: str) -> "PipelineResult":
        return cls(
            ocr_text=f"{ERROR_PREFIX}{message}",
            error=message,
            error_kind=kind,
            superseded=kind == OCRSupersededError.kind,
        )

    @classmethod
    def from_error(cls, error: OCRError) -> "PipelineResult":
        return cls.failure(error.message, error.kind)

    @classmethod
    def from_ocr_result(cls, result: OCRResult) -> "PipelineResult":
        return cls.failure(result.error, result.error_kind)


def _log_abandoned(work: asyncio.Future) -> None:
    # Result of a superseded upload; nobody is waiting for it any more
    if work.cancelled():
        return
    error = work.exception()
    if error is not None:
        logger.info(f"Superseded OCR work failed: {error}")
    else:
        logger.info("Superseded OCR work finished; result discarded")


def normalize_text(raw: str, newline_mode: str = "space") -> str:
    """
    Collapse every run of line breaks into one space ("space") or drop it
    ("remove"), then trim.
    """
    if newline_mode not in ("space", "remove"):
        raise ValueError(f"Unknown newline mode: {newline_mode!r}")
    replacement = " " if newline_mode == "space" else ""
    return _LINE_BREAKS.sub(replacement, raw).strip()


def format_size_limit(limit: int) -> str:
    if limit % (1024 * 1024) == 0:
        return f"{limit // (1024 * 1024)} MB"
    if limit % 1024 == 0:
        return f"{limit // 1024} KB"
    return f"{limit} bytes"


class OCRPipeline:
    """
    Image -> OCR engine -> normalized text -> decrypted text.
    Every OCRError is recovered here and reported in the returned PipelineResult.
    """

    def __init__(
        self,
        engine: OCREngine,
        *,
        cipher: SubstitutionCipher = default_cipher,
        newline_mode: str = "space",
        max_concurrent: int = 2,
    ):
        if newline_mode not in ("space", "remove"):
            raise ValueError(f"Unknown newline mode: {newline_mode!r}")
        self.engine = engine
        self.cipher = cipher
        self.newline_mode = newline_mode
        self._semaphore = asyncio.Semaphore(max_concurrent)

    def validate(self, image_bytes: bytes) -> None:
        limit = self.engine.max_image_bytes
        if limit is not None and len(image_bytes) > limit:
            raise FileTooLargeError(f"File too large. Maximum size is {format_size_limit(limit)}.")

    async def _recognize_limited(self, image_bytes: bytes, filename: str, api_key: Optional[str],
                                 started: asyncio.Event) -> str:
        async with self._semaphore:
            started.set()
            logger.info(f"🔍 Running {self.engine.name} OCR on {filename} ({len(image_bytes)} bytes)")
            return await self.engine.recognize(image_bytes, filename=filename, api_key=api_key)

    async def extract(self, image_bytes: bytes, *, filename: str = "image.png",
                      api_key: Optional[str] = None) -> OCRResult:
        try:
            self.validate(image_bytes)
            # Engine work that already holds a permit runs to completion even if
            # the caller is cancelled; the permit is released only when it is done.
            started = asyncio.Event()
            work = asyncio.ensure_future(self._recognize_limited(image_bytes, filename, api_key, started))
            try:
                text = await asyncio.shield(work)
            except asyncio.CancelledError:
                if started.is_set():
                    work.add_done_callback(_log_abandoned)
                else:
                    work.cancel()
                raise
        except OCRError as e:
            logger.warning(f"OCR failed for {filename} [{e.kind}]: {e.message}")
            return OCRResult(error=e.message, error_kind=e.kind)
        return OCRResult(text=text)

    async def _process(self, image_bytes: bytes, filename: str, api_key: Optional[str]) -> PipelineResult:
        result = await self.extract(image_bytes, filename=filename, api_key=api_key)
        if result.failed:
            return PipelineResult.from_ocr_result(result)

        cleaned = normalize_text(result.text, self.newline_mode)
        logger.info(f"✅ OCR extracted {len(cleaned)} characters from {filename}")
        return PipelineResult(ocr_text=cleaned, decrypted_text=self.cipher.decrypt(cleaned))

    async def run(
        self,
        image_bytes: Optional[bytes],
        *,
        filename: str = "image.png",
        api_key: Optional[str] = None,
        slot: Optional[OCRTaskSlot] = None,
    ) -> Optional[PipelineResult]:
        """
        Returns None when no image was given. With a slot, a later run on the
        same slot supersedes this one. Oversized images are rejected before
        touching the slot, so they never supersede a valid upload.
        """
        if not image_bytes:
            return None

        try:
            self.validate(image_bytes)
        except FileTooLargeError as e:
            logger.warning(f"Rejected {filename}: {e.message}")
            return PipelineResult.from_error(e)

        slot = slot or OCRTaskSlot()
        try:
            return await slot.run(self._process(image_bytes, filename, api_key))
        except OCRSupersededError as e:
            logger.info(f"Discarding OCR result for {filename}: {e.message}")
            return PipelineResult.from_error(e)
