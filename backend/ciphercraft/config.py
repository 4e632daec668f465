import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

backend_dir = Path(__file__).parent.parent
env_path = backend_dir / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path)
else:
    # Try loading from current directory or parent directories
    load_dotenv()

OCR_SPACE_URL = "https://api.ocr.space/parse/image"
# Public demo key published by OCR.space; heavily rate limited
DEMO_API_KEY = "helloworld"
MAX_UPLOAD_BYTES = 1024 * 1024  # 1MB

OCR_BACKENDS = ("local", "remote")
NEWLINE_MODES = ("space", "remove")


def resolve_api_key(caller_key: Optional[str] = None, configured_key: Optional[str] = None) -> str:
    """
    Pick the OCR API key: caller-supplied, then configured default, then the demo key.
    Blank strings count as missing.
    """
    for key in (caller_key, configured_key):
        if key and key.strip():
            return key.strip()
    return DEMO_API_KEY


class Settings:
    def __init__(self):
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

        self.ocr_backend = os.getenv("CIPHERCRAFT_OCR_BACKEND", "local").strip().lower()
        if self.ocr_backend not in OCR_BACKENDS:
            raise ValueError(f"CIPHERCRAFT_OCR_BACKEND must be one of {OCR_BACKENDS}, got {self.ocr_backend!r}")

        self.newline_mode = os.getenv("CIPHERCRAFT_NEWLINE_MODE", "space").strip().lower()
        if self.newline_mode not in NEWLINE_MODES:
            raise ValueError(f"CIPHERCRAFT_NEWLINE_MODE must be one of {NEWLINE_MODES}, got {self.newline_mode!r}")

        self.ocr_api_key = os.getenv("OCR_SPACE_API_KEY")
        self.ocr_url = os.getenv("CIPHERCRAFT_OCR_URL", OCR_SPACE_URL)
        self.ocr_language = os.getenv("CIPHERCRAFT_OCR_LANGUAGE", "eng")
        self.max_upload_bytes = int(os.getenv("CIPHERCRAFT_MAX_UPLOAD_BYTES", str(MAX_UPLOAD_BYTES)))
        self.ocr_timeout = float(os.getenv("CIPHERCRAFT_OCR_TIMEOUT", "60"))
        self.max_concurrent_ocr = max(1, int(os.getenv("CIPHERCRAFT_MAX_CONCURRENT_OCR", "2")))
        self.tesseract_cmd = os.getenv("TESSERACT_CMD")

        # Comma-separated list of allowed origins for CORS
        raw = os.getenv("ALLOWED_ORIGINS", "*")
        self.allowed_origins = [o.strip() for o in raw.split(",") if o.strip()]


@lru_cache()
def get_settings():
    return Settings()
