from pydantic import BaseModel
from typing import Dict, Optional


class CipherRequest(BaseModel):
    text: str


class CipherResponse(BaseModel):
    result: str


class CipherTable(BaseModel):
    forward: Dict[str, str]
    reverse: Dict[str, str]


class OCRDecryptResponse(BaseModel):
    ocr_text: Optional[str] = None
    decrypted_text: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    superseded: bool = False


class OCRStatus(BaseModel):
    session_id: str
    busy: bool
