from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import List, Dict, Optional
import logging

from app.database import get_db
from app.exceptions import ValidationError
from app.services.auth import get_current_user_id
from app.services.vocabulary import create_items, list_items, list_sections, parse_vocabulary_text
from app.utils.helpers import log_user_action

logger = logging.getLogger(__name__)
router = APIRouter()

UPLOAD_FORMAT_HINT = "Format: German - English - Bengali[ - Section]"


# Pydantic models
class UploadRequest(BaseModel):
    vocabulary_text: str
    section: Optional[str] = None


class UploadResponse(BaseModel):
    message: str
    count: int


class VocabularyListResponse(BaseModel):
    vocabs: List[Dict]
    total_count: int


class SectionListResponse(BaseModel):
    sections: List[str]


def store_upload(db: Session, user_id: int, text: str, section: Optional[str]) -> UploadResponse:
    """Parse uploaded text and save every valid line"""
    if not text or not text.strip():
        raise ValidationError("Vocabulary text is required", field="vocabulary_text")

    entries = parse_vocabulary_text(text, section)
    if not entries:
        raise ValidationError(f"No valid vocabulary items found. {UPLOAD_FORMAT_HINT}", field="vocabulary_text")

    items = create_items(db, user_id, entries)
    log_user_action(user_id, "uploaded vocabulary", {"count": len(items)})

    return UploadResponse(
        message=f"{len(items)} vocabulary items uploaded successfully",
        count=len(items)
    )


def vocab_to_dict(item) -> Dict:
    return {
        "id": item.id,
        "german": item.german,
        "english": item.english,
        "bengali": item.bengali,
        "section": item.section,
        "created_at": item.created_at.isoformat() if item.created_at else None,
        **item.counters()
    }


@router.post("/upload", response_model=UploadResponse)
async def upload_vocabulary(
        request: UploadRequest,
        user_id: int = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    """
    Upload vocabulary pasted as text, one word per line
    """
    return store_upload(db, user_id, request.vocabulary_text, request.section)


@router.post("/upload-file", response_model=UploadResponse)
async def upload_vocabulary_file(
        file: UploadFile = File(...),
        section: Optional[str] = Form(None),
        user_id: int = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    """
    Upload vocabulary from a UTF-8 text file
    """
    content = await file.read()
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("File must be UTF-8 encoded text", field="file")

    logger.info(f"Processing vocabulary file '{file.filename}' ({len(content)} bytes) for user {user_id}")
    return store_upload(db, user_id, text, section)


@router.get("/list", response_model=VocabularyListResponse)
async def get_vocabulary(
        section: Optional[str] = None,
        user_id: int = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    """
    List the user's vocabulary with progress counters
    """
    items = list_items(db, user_id, section)
    return VocabularyListResponse(
        vocabs=[vocab_to_dict(item) for item in items],
        total_count=len(items)
    )


@router.get("/sections", response_model=SectionListResponse)
async def get_sections(
        user_id: int = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    return SectionListResponse(sections=list_sections(db, user_id))
