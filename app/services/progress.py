"""
Progress tracker: per-item counter updates and aggregate statistics.
"""
from dataclasses import dataclass, field, asdict
from typing import List, Optional, Sequence, Tuple
import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import ItemNotFound, SessionStateError
from app.models import VocabularyItem
from app.services.selection import QuizMode, AskedLanguage
from app.services.vocabulary import get_item
from app.utils.helpers import calculate_rate, log_user_action, normalize_answer, safe_average, truncate_text, utc_now

logger = logging.getLogger(__name__)


def is_correct_answer(submitted: str, correct: str) -> bool:
    """Case-insensitive comparison of trimmed strings"""
    return normalize_answer(submitted) == normalize_answer(correct)


def _increments(mode: QuizMode, outcome: bool) -> dict:
    """Column -> expression for one recorded outcome"""
    item = VocabularyItem
    if mode == QuizMode.MULTIPLE_CHOICE:
        counter = item.choice_correct if outcome else item.choice_mistakes
        attempts = item.choice_attempts
    else:
        counter = item.swipe_known if outcome else item.swipe_unknown
        attempts = item.swipe_attempts

    return {
        counter.key: counter + 1,
        attempts.key: attempts + 1,
        item.practice_count.key: item.practice_count + 1,
        item.last_practiced_at.key: utc_now(),
    }


def _item_exists(db: Session, user_id: int, item_id: int) -> bool:
    return db.query(VocabularyItem.id).filter(
        VocabularyItem.id == item_id,
        VocabularyItem.user_id == user_id
    ).first() is not None


def record_answer(db: Session, user_id: int, item_id: int, mode: QuizMode, outcome: bool,
                  expected_practice_count: Optional[int] = None) -> VocabularyItem:
    """
    Record one quiz outcome for an item.

    ``outcome`` is "is correct" in multiple choice and "is known" in the
    swipe drill. Counters are incremented in the database in a single UPDATE
    so concurrent sessions don't lose updates.

    With ``expected_practice_count`` the update only applies if the item has
    not been practised since that count was read; otherwise SessionStateError
    is raised and nothing changes.

    Raises ItemNotFound when the item doesn't belong to the user.
    """
    conditions = [VocabularyItem.id == item_id, VocabularyItem.user_id == user_id]
    if expected_practice_count is not None:
        conditions.append(VocabularyItem.practice_count == expected_practice_count)

    stmt = (
        update(VocabularyItem)
        .where(*conditions)
        .values(**_increments(mode, outcome))
        .execution_options(synchronize_session=False)
    )

    try:
        result = db.execute(stmt)
        if result.rowcount == 0:
            db.rollback()
            if expected_practice_count is not None and _item_exists(db, user_id, item_id):
                raise SessionStateError("Item was already answered for this quiz step")
            raise ItemNotFound(item_id)
        db.commit()
    except (ItemNotFound, SessionStateError):
        raise
    except Exception as e:
        logger.error(f"Failed to record answer for item {item_id}: {str(e)}")
        db.rollback()
        raise

    item = db.get(VocabularyItem, item_id, populate_existing=True)
    log_user_action(user_id, f"{mode.value} answer recorded", {"item_id": item_id, "outcome": outcome})
    return item


def submit_choice_answer(db: Session, user_id: int, item_id: int, submitted: str,
                         asked_language: AskedLanguage,
                         expected_practice_count: Optional[int] = None) -> Tuple[bool, str, VocabularyItem]:
    """
    Check a multiple choice answer against the item and record it.

    Returns (is_correct, correct_answer, updated item).
    """
    item = get_item(db, user_id, item_id)
    correct_answer = item.translation(asked_language.value)
    is_correct = is_correct_answer(submitted, correct_answer)

    logger.debug(f"Answer check for item {item_id}: '{truncate_text(submitted, 40)}' -> {is_correct}")

    updated = record_answer(db, user_id, item_id, QuizMode.MULTIPLE_CHOICE, is_correct,
                            expected_practice_count)
    return is_correct, correct_answer, updated


@dataclass
class MistakenWord:
    item_id: int
    german: str
    english: str
    bengali: str
    choice_mistakes: int
    swipe_unknown: int
    combined_mistakes: int


@dataclass
class StatsSummary:
    total_items: int = 0

    # Multiple choice
    total_choice_attempts: int = 0
    total_choice_correct: int = 0
    total_choice_mistakes: int = 0
    words_with_choice_mistakes: int = 0
    choice_success_rate: float = 0
    average_choice_mistakes: float = 0

    # Swipe
    total_swipe_attempts: int = 0
    total_swipe_known: int = 0
    total_swipe_unknown: int = 0
    words_with_swipe_unknown: int = 0
    swipe_success_rate: float = 0
    average_swipe_unknown: float = 0

    # Overall
    total_practice_count: int = 0
    combined_mistakes: int = 0
    average_combined_mistakes: float = 0
    overall_success_rate: float = 0
    most_mistaken: List[MistakenWord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def compute_stats(items: Sequence[VocabularyItem], most_mistaken_limit: Optional[int] = None) -> StatsSummary:
    """Aggregate statistics over all of a user's items"""
    if most_mistaken_limit is None:
        most_mistaken_limit = settings.most_mistaken_limit

    count = len(items)
    choice_attempts = sum(item.choice_attempts for item in items)
    choice_correct = sum(item.choice_correct for item in items)
    choice_mistakes = sum(item.choice_mistakes for item in items)
    swipe_attempts = sum(item.swipe_attempts for item in items)
    swipe_known = sum(item.swipe_known for item in items)
    swipe_unknown = sum(item.swipe_unknown for item in items)
    combined = choice_mistakes + swipe_unknown

    # sorted() is stable so equal counts keep input order
    ranked = sorted(
        (item for item in items if item.combined_mistakes > 0),
        key=lambda item: item.combined_mistakes,
        reverse=True,
    )
    most_mistaken = [
        MistakenWord(
            item_id=item.id,
            german=item.german,
            english=item.english,
            bengali=item.bengali,
            choice_mistakes=item.choice_mistakes,
            swipe_unknown=item.swipe_unknown,
            combined_mistakes=item.combined_mistakes,
        )
        for item in ranked[:most_mistaken_limit]
    ]

    return StatsSummary(
        total_items=count,
        total_choice_attempts=choice_attempts,
        total_choice_correct=choice_correct,
        total_choice_mistakes=choice_mistakes,
        words_with_choice_mistakes=sum(1 for item in items if item.choice_mistakes > 0),
        choice_success_rate=calculate_rate(choice_correct, choice_attempts),
        average_choice_mistakes=safe_average(choice_mistakes, count),
        total_swipe_attempts=swipe_attempts,
        total_swipe_known=swipe_known,
        total_swipe_unknown=swipe_unknown,
        words_with_swipe_unknown=sum(1 for item in items if item.swipe_unknown > 0),
        swipe_success_rate=calculate_rate(swipe_known, swipe_attempts),
        average_swipe_unknown=safe_average(swipe_unknown, count),
        total_practice_count=sum(item.practice_count for item in items),
        combined_mistakes=combined,
        average_combined_mistakes=safe_average(combined, count),
        overall_success_rate=calculate_rate(choice_correct + swipe_known, choice_attempts + swipe_attempts),
        most_mistaken=most_mistaken,
    )
