"""
Quiz session controller.

A session runs a fixed number of select -> answer -> score cycles:

    selecting -> awaiting_answer -> scoring -> (selecting | completed)

Sessions are not stored on the server. After every step the session is
signed into a JWT and handed back to the client, which sends it with the
next request. Walking away from a quiz therefore leaves nothing behind
except the counter updates already recorded for answered items.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional
import random
import logging

import jwt
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import InvalidSessionError, SessionStateError, ValidationError
from app.services import progress
from app.services.selection import AskedLanguage, QuizMode, build_question, select_card, select_next
from app.services.vocabulary import list_items
from app.utils.helpers import calculate_rate, log_user_action, utc_now

logger = logging.getLogger(__name__)

TOKEN_TYPE = "quiz_session"


class QuizState(str, Enum):
    SELECTING = "selecting"
    AWAITING_ANSWER = "awaiting_answer"
    SCORING = "scoring"
    COMPLETED = "completed"


@dataclass
class QuizSummary:
    total: int
    correct: int
    score_percent: float
    completed_at: datetime

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "correct": self.correct,
            "score_percent": self.score_percent,
            "completed_at": self.completed_at.isoformat(),
        }


@dataclass
class QuizSession:
    mode: QuizMode
    target_length: int
    position: int = 1
    correct_count: int = 0
    state: QuizState = QuizState.SELECTING
    presented_ids: List[int] = field(default_factory=list)
    current_item_id: Optional[int] = None
    # practice_count of the current item when it was presented
    current_practice_count: Optional[int] = None
    asked_language: Optional[AskedLanguage] = None
    section: Optional[str] = None
    started_at: datetime = field(default_factory=utc_now)

    @classmethod
    def start(cls, mode: QuizMode, target_length: int, section: Optional[str] = None) -> "QuizSession":
        if target_length < 1:
            raise ValidationError("Quiz length must be at least 1", field="length")
        return cls(mode=mode, target_length=target_length, section=section)

    def require_state(self, expected: QuizState, action: str):
        if self.state != expected:
            raise SessionStateError(f"Cannot {action} while session is {self.state.value}")

    def present(self, item_id: int, asked_language: Optional[AskedLanguage] = None,
                practice_count: Optional[int] = None):
        """selecting -> awaiting_answer"""
        self.require_state(QuizState.SELECTING, "present an item")
        self.current_item_id = item_id
        self.current_practice_count = practice_count
        self.asked_language = asked_language
        self.presented_ids.append(item_id)
        self.state = QuizState.AWAITING_ANSWER

    def submit(self, outcome: bool):
        """awaiting_answer -> scoring"""
        self.require_state(QuizState.AWAITING_ANSWER, "submit an answer")
        if outcome:
            self.correct_count += 1
        self.state = QuizState.SCORING

    def advance(self) -> Optional[QuizSummary]:
        """
        scoring -> selecting, or scoring -> completed once the target length
        is reached. Returns the summary on completion.
        """
        self.require_state(QuizState.SCORING, "advance")
        self.current_item_id = None
        self.current_practice_count = None
        self.asked_language = None

        if self.position < self.target_length:
            self.position += 1
            self.state = QuizState.SELECTING
            return None

        self.state = QuizState.COMPLETED
        return self.summary()

    def skip(self):
        """awaiting_answer -> selecting without scoring the current item"""
        self.require_state(QuizState.AWAITING_ANSWER, "skip")
        self.current_item_id = None
        self.current_practice_count = None
        self.asked_language = None
        self.state = QuizState.SELECTING

    @property
    def is_completed(self) -> bool:
        return self.state == QuizState.COMPLETED

    def summary(self, completed_at: Optional[datetime] = None) -> QuizSummary:
        return QuizSummary(
            total=self.target_length,
            correct=self.correct_count,
            score_percent=calculate_rate(self.correct_count, self.target_length),
            completed_at=completed_at or utc_now(),
        )

    # ---------- token encoding ----------

    def to_token(self, user_id: int) -> str:
        """Sign the session for the given user"""
        payload = {
            "type": TOKEN_TYPE,
            "sub": str(user_id),
            "exp": utc_now() + timedelta(minutes=settings.quiz_session_expire_minutes),
            "mode": self.mode.value,
            "target_length": self.target_length,
            "position": self.position,
            "correct_count": self.correct_count,
            "state": self.state.value,
            "presented_ids": self.presented_ids,
            "current_item_id": self.current_item_id,
            "current_practice_count": self.current_practice_count,
            "asked_language": self.asked_language.value if self.asked_language else None,
            "section": self.section,
            "started_at": self.started_at.isoformat(),
        }
        return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    @classmethod
    def from_token(cls, token: str, user_id: int) -> "QuizSession":
        """Verify and decode a session token issued to the given user"""
        try:
            payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            raise InvalidSessionError("Quiz session expired")
        except jwt.PyJWTError as e:
            logger.warning(f"Invalid quiz session token: {str(e)}")
            raise InvalidSessionError("Invalid quiz session")

        if payload.get("type") != TOKEN_TYPE or payload.get("sub") != str(user_id):
            raise InvalidSessionError("Invalid quiz session")

        try:
            asked_language = payload.get("asked_language")
            return cls(
                mode=QuizMode(payload["mode"]),
                target_length=int(payload["target_length"]),
                position=int(payload["position"]),
                correct_count=int(payload["correct_count"]),
                state=QuizState(payload["state"]),
                presented_ids=[int(item_id) for item_id in payload.get("presented_ids", [])],
                current_item_id=payload.get("current_item_id"),
                current_practice_count=payload.get("current_practice_count"),
                asked_language=AskedLanguage(asked_language) if asked_language else None,
                section=payload.get("section"),
                started_at=datetime.fromisoformat(payload["started_at"]),
            )
        except (KeyError, ValueError, TypeError):
            raise InvalidSessionError("Invalid quiz session")


# ---------- controller ----------

def next_step(db: Session, user_id: int, session: QuizSession,
              rng: Optional[random.Random] = None) -> dict:
    """
    Select the next question/card for a session in the selecting state and
    move it to awaiting_answer. Returns the client payload.
    """
    session.require_state(QuizState.SELECTING, "select the next item")

    items = list_items(db, user_id, session.section)
    # Avoid repeats within the session while unseen items remain
    presented = set(session.presented_ids)
    fresh = [item for item in items if item.id not in presented]
    candidates = fresh or items

    if session.mode == QuizMode.MULTIPLE_CHOICE:
        item = select_next(candidates, QuizMode.MULTIPLE_CHOICE, rng)
        # Distractors may come from the whole set, not just unseen items
        question = build_question(item, items, rng)
        session.present(question.item_id, question.asked_language, item.practice_count)
        return question.to_public_dict()

    card = select_card(candidates, rng)
    session.present(card.id, practice_count=card.practice_count)
    return card_payload(card)


def answer_step(db: Session, user_id: int, session: QuizSession, item_id: int,
                answer: Optional[str] = None, is_known: Optional[bool] = None) -> dict:
    """
    Score the current item of a session.

    The progress tracker runs before any state change, so a failed update
    leaves the session as it was and the client may retry or skip. The update
    only applies while the item still has the practice_count it had when it
    was presented, so a token sent back a second time is rejected.
    """
    session.require_state(QuizState.AWAITING_ANSWER, "submit an answer")
    if item_id != session.current_item_id:
        raise ValidationError("Answer does not match the current item", field="item_id")

    result = {"item_id": item_id}
    if session.mode == QuizMode.MULTIPLE_CHOICE:
        if answer is None or not answer.strip():
            raise ValidationError("Answer is required", field="answer")
        is_correct, correct_answer, _ = progress.submit_choice_answer(
            db, user_id, item_id, answer, session.asked_language,
            expected_practice_count=session.current_practice_count
        )
        outcome = is_correct
        result.update({"is_correct": is_correct, "correct_answer": correct_answer})
    else:
        if is_known is None:
            raise ValidationError("is_known is required", field="is_known")
        updated = progress.record_answer(
            db, user_id, item_id, QuizMode.SWIPE, is_known,
            expected_practice_count=session.current_practice_count
        )
        outcome = is_known
        result.update({"is_known": is_known, "counters": updated.counters()})

    session.submit(outcome)
    summary = session.advance()
    if summary is not None:
        log_user_action(user_id, "completed quiz", {
            "mode": session.mode.value,
            "correct": summary.correct,
            "total": summary.total,
        })
        result["summary"] = summary.to_dict()
    return result


def card_payload(card) -> dict:
    return {
        "item_id": card.id,
        "german": card.german,
        "english": card.english,
        "bengali": card.bengali,
        "section": card.section,
        "counters": card.counters(),
    }
