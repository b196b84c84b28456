from typing import Optional
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


def normalize_answer(answer: str) -> str:
    """
    Normalize user answer for comparison (trimmed, case-insensitive)
    """
    if not answer:
        return ""

    return answer.strip().lower()


def calculate_rate(part: int, total: int) -> float:
    """
    Percentage rounded to 2 decimals, 0 when nothing was attempted
    """
    if total == 0:
        return 0
    return round((part / total) * 100, 2)


def safe_average(total: int, count: int) -> float:
    """
    Average rounded to 2 decimals, 0 for an empty set
    """
    if count == 0:
        return 0
    return round(total / count, 2)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    Treat naive datetimes (SQLite drops tzinfo) as UTC
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def log_user_action(user_id: int, action: str, details: Optional[dict] = None):
    """
    Log user actions for analytics
    """
    log_message = f"User {user_id}: {action}"
    if details:
        log_message += f" - {details}"

    logger.info(log_message)


def truncate_text(text: str, max_length: int = 100) -> str:
    """
    Truncate text to specified length
    """
    if not text or len(text) <= max_length:
        return text

    return text[:max_length - 3] + "..."
