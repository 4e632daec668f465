from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from functools import lru_cache
from pathlib import Path
from typing import Optional
import logging

from .cipher_engine import cipher
from .config import get_settings
from .ocr_engines import OCRSpaceEngine, TesseractOCREngine
from .ocr_pipeline import OCRPipeline
from .schemas import CipherRequest, CipherResponse, CipherTable, OCRDecryptResponse, OCRStatus
from .task_slot import TaskSlotRegistry

# Configure logging
logger = logging.getLogger("uvicorn")

settings = get_settings()
logger.setLevel(settings.log_level.upper())

app = FastAPI(
    title="CipherCraft",
    description="Substitution cipher with OCR image decryption",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# One in-flight OCR request per browser session
task_slots = TaskSlotRegistry()

static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=static_dir), name="static")


@lru_cache()
def get_pipeline() -> OCRPipeline:
    settings = get_settings()
    if settings.ocr_backend == "remote":
        engine = OCRSpaceEngine(
            settings.ocr_url,
            api_key=settings.ocr_api_key,
            language=settings.ocr_language,
            max_image_bytes=settings.max_upload_bytes,
            timeout=settings.ocr_timeout,
        )
    else:
        engine = TesseractOCREngine(lang=settings.ocr_language, tesseract_cmd=settings.tesseract_cmd)
    logger.info(f"OCR backend: {engine.name}")
    return OCRPipeline(
        engine,
        newline_mode=settings.newline_mode,
        max_concurrent=settings.max_concurrent_ocr,
    )


def get_task_slots() -> TaskSlotRegistry:
    return task_slots


@app.get("/")
def read_root():
    return RedirectResponse(url="/static/index.html")


@app.get("/health")
def health():
    return {"status": "healthy", "ocr_backend": settings.ocr_backend}


@app.get("/cipher-table", response_model=CipherTable)
def get_cipher_table():
    return {"forward": dict(cipher.forward_map), "reverse": dict(cipher.reverse_map)}


@app.post("/encrypt", response_model=CipherResponse)
def encrypt_text(req: CipherRequest):
    return {"result": cipher.encrypt(req.text)}


@app.post("/decrypt", response_model=CipherResponse)
def decrypt_text(req: CipherRequest):
    return {"result": cipher.decrypt(req.text)}


@app.post("/ocr-decrypt", response_model=OCRDecryptResponse)
async def ocr_decrypt(
    file: Optional[UploadFile] = File(None),
    apikey: Optional[str] = Form(None),
    session_id: Optional[str] = Form(None),
    pipeline: OCRPipeline = Depends(get_pipeline),
    slots: TaskSlotRegistry = Depends(get_task_slots),
):
    if file is None or not file.filename:
        return Response(status_code=204)

    image_bytes = await file.read()
    if not image_bytes:
        return Response(status_code=204)

    logger.info(f"📥 Received {file.filename} ({len(image_bytes)} bytes)")
    slot = slots.get(session_id)
    try:
        result = await pipeline.run(image_bytes, filename=file.filename, api_key=apikey, slot=slot)
    finally:
        slots.release(session_id)

    if result.error_kind == "validation":
        raise HTTPException(status_code=413, detail=result.ocr_text)
    return result


@app.get("/ocr-status", response_model=OCRStatus)
def ocr_status(session_id: str, slots: TaskSlotRegistry = Depends(get_task_slots)):
    return {"session_id": session_id, "busy": slots.is_busy(session_id)}
