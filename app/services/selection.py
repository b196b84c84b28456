"""
Selection engine: picks the next vocabulary item to practise.

Items are ordered in two phases. A uniform shuffle first randomises the
order of items whose keys tie, then a stable sort on the real keys puts the
hardest and stalest items first:

* multiple choice: most ``choice_mistakes`` first
* swipe: most ``swipe_unknown`` first

and, for equal counts, never-practised items before the least recently
practised ones. Multiple choice draws from the top slice of that ordering;
the swipe drill draws from the whole ordered set.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence
import random
import logging

from app.config import settings
from app.exceptions import EmptyPoolError
from app.models import VocabularyItem
from app.utils.helpers import as_utc, normalize_answer

logger = logging.getLogger(__name__)


class QuizMode(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    SWIPE = "swipe"


class AskedLanguage(str, Enum):
    ENGLISH = "english"
    BENGALI = "bengali"


OPTION_COUNT = 4
DISTRACTOR_COUNT = OPTION_COUNT - 1

# Used when the user does not own enough other words to build distractors
FALLBACK_DISTRACTORS = {
    AskedLanguage.ENGLISH: ["To walk", "To eat", "To sleep", "To drink", "To read", "To write"],
    AskedLanguage.BENGALI: ["হাঁটা", "খাওয়া", "ঘুমানো", "পান করা", "পড়া", "লেখা"],
}


@dataclass
class MultipleChoiceQuestion:
    item_id: int
    german: str
    asked_language: AskedLanguage
    options: List[str]
    correct_answer: str = field(repr=False)

    def to_public_dict(self) -> dict:
        """Payload for the client, without the correct answer"""
        return {
            "item_id": self.item_id,
            "german": self.german,
            "asked_language": self.asked_language.value,
            "options": list(self.options),
        }


def _priority_count(item: VocabularyItem, mode: QuizMode) -> int:
    if mode == QuizMode.MULTIPLE_CHOICE:
        return item.choice_mistakes or 0
    return item.swipe_unknown or 0


def _staleness_key(item: VocabularyItem):
    # Never practised sorts before any timestamp
    if item.last_practiced_at is None:
        return (0, 0.0)
    return (1, as_utc(item.last_practiced_at).timestamp())


def prioritize(items: Sequence[VocabularyItem], mode: QuizMode,
               rng: Optional[random.Random] = None) -> List[VocabularyItem]:
    """Order items hardest/stalest first, ties in random order"""
    rng = rng or random.Random()
    ordered = list(items)
    rng.shuffle(ordered)
    ordered.sort(key=lambda item: (-_priority_count(item, mode), _staleness_key(item)))
    return ordered


def pool_size(total: int, percent: Optional[int] = None) -> int:
    """Number of items eligible for the multiple choice draw: ceil(percent% of total)"""
    if percent is None:
        percent = settings.selection_pool_percent
    if total < 2:
        return total
    return max(1, -(-total * percent // 100))


def selection_pool(items: Sequence[VocabularyItem], mode: QuizMode,
                   rng: Optional[random.Random] = None) -> List[VocabularyItem]:
    """Items eligible for the next draw in the given mode"""
    ordered = prioritize(items, mode, rng)
    if mode == QuizMode.MULTIPLE_CHOICE:
        return ordered[:pool_size(len(ordered))]
    # Swipe mode keeps the whole set
    return ordered


def select_next(items: Sequence[VocabularyItem], mode: QuizMode,
                rng: Optional[random.Random] = None) -> VocabularyItem:
    """
    Pick the next item to present.

    Raises EmptyPoolError when there is nothing to choose from.
    """
    if not items:
        raise EmptyPoolError()

    rng = rng or random.Random()
    pool = selection_pool(items, mode, rng)
    return rng.choice(pool)


def build_distractors(item: VocabularyItem, items: Sequence[VocabularyItem],
                      language: AskedLanguage, rng: Optional[random.Random] = None) -> List[str]:
    """
    Three wrong answers in the asked language.

    Real words from the user's other items are preferred; fixed fallback
    phrases fill the gap. No distractor repeats another or matches the
    correct answer.
    """
    rng = rng or random.Random()
    correct = item.translation(language.value)
    taken = {normalize_answer(correct)}
    distractors: List[str] = []

    others = [other for other in items if other.id != item.id]
    rng.shuffle(others)
    for other in others:
        if len(distractors) == DISTRACTOR_COUNT:
            break
        value = other.translation(language.value)
        if normalize_answer(value) in taken:
            continue
        taken.add(normalize_answer(value))
        distractors.append(value)

    for fallback in FALLBACK_DISTRACTORS[language]:
        if len(distractors) == DISTRACTOR_COUNT:
            break
        if normalize_answer(fallback) in taken:
            continue
        taken.add(normalize_answer(fallback))
        distractors.append(fallback)

    return distractors


def build_question(item: VocabularyItem, items: Sequence[VocabularyItem],
                   rng: Optional[random.Random] = None) -> MultipleChoiceQuestion:
    """Turn an item into a four-option question"""
    rng = rng or random.Random()
    language = AskedLanguage.ENGLISH if rng.random() < 0.5 else AskedLanguage.BENGALI
    correct = item.translation(language.value)

    options = build_distractors(item, items, language, rng) + [correct]
    rng.shuffle(options)

    return MultipleChoiceQuestion(
        item_id=item.id,
        german=item.german,
        asked_language=language,
        options=options,
        correct_answer=correct,
    )


def select_question(items: Sequence[VocabularyItem],
                    rng: Optional[random.Random] = None) -> MultipleChoiceQuestion:
    """Pick the next multiple choice question"""
    rng = rng or random.Random()
    item = select_next(items, QuizMode.MULTIPLE_CHOICE, rng)
    question = build_question(item, items, rng)
    logger.debug(f"Selected item {item.id} asking {question.asked_language.value}")
    return question


def select_card(items: Sequence[VocabularyItem],
                rng: Optional[random.Random] = None) -> VocabularyItem:
    """Pick the next swipe card"""
    return select_next(items, QuizMode.SWIPE, rng)
