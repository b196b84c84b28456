"""
Vocabulary store: parsing uploads and scoped access to a user's items.
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence
import logging

from sqlalchemy.orm import Session

from app.exceptions import ItemNotFound
from app.models import VocabularyItem

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = " - "


@dataclass
class ParsedEntry:
    german: str
    english: str
    bengali: str
    section: Optional[str] = None


def parse_line(line: str, default_section: Optional[str] = None) -> Optional[ParsedEntry]:
    """
    Parse 'German - English - Bengali[ - Section]'.

    Returns None for lines that don't have exactly 3 or 4 non-empty fields.
    """
    parts = [part.strip() for part in line.split(FIELD_SEPARATOR)]
    if len(parts) not in (3, 4) or not all(parts):
        return None

    german, english, bengali = parts[:3]
    section = parts[3] if len(parts) == 4 else default_section
    return ParsedEntry(german=german, english=english, bengali=bengali, section=section)


def parse_vocabulary_text(text: str, default_section: Optional[str] = None) -> List[ParsedEntry]:
    """Parse an upload, silently dropping malformed lines"""
    if default_section is not None:
        default_section = default_section.strip() or None

    entries = []
    for line in (text or "").splitlines():
        entry = parse_line(line, default_section)
        if entry is not None:
            entries.append(entry)
    return entries


def create_items(db: Session, user_id: int, entries: Sequence[ParsedEntry]) -> List[VocabularyItem]:
    """Bulk insert parsed entries for a user in one transaction"""
    items = [
        VocabularyItem(
            user_id=user_id,
            german=entry.german,
            english=entry.english,
            bengali=entry.bengali,
            section=entry.section,
        )
        for entry in entries
    ]
    try:
        db.add_all(items)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Created {len(items)} vocabulary items for user {user_id}")
    return items


def list_items(db: Session, user_id: int, section: Optional[str] = None) -> List[VocabularyItem]:
    """All items of a user, oldest first, optionally restricted to one section"""
    query = db.query(VocabularyItem).filter(VocabularyItem.user_id == user_id)
    if section:
        query = query.filter(VocabularyItem.section == section)
    return query.order_by(VocabularyItem.created_at.asc(), VocabularyItem.id.asc()).all()


def get_item(db: Session, user_id: int, item_id: int) -> VocabularyItem:
    """Get an item owned by the user or raise ItemNotFound"""
    item = db.query(VocabularyItem).filter(
        VocabularyItem.id == item_id,
        VocabularyItem.user_id == user_id
    ).first()

    if item is None:
        raise ItemNotFound(item_id)
    return item


def list_sections(db: Session, user_id: int) -> List[str]:
    rows = db.query(VocabularyItem.section).filter(
        VocabularyItem.user_id == user_id,
        VocabularyItem.section.isnot(None)
    ).distinct().order_by(VocabularyItem.section).all()
    return [row[0] for row in rows]
