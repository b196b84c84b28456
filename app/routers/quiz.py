from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from typing import List, Dict, Optional
import logging

from app.config import settings
from app.database import get_db
from app.services import progress
from app.services.auth import get_current_user_id
from app.services.quiz_session import QuizSession, answer_step, card_payload, next_step
from app.services.selection import AskedLanguage, QuizMode, select_card, select_question
from app.services.vocabulary import list_items

logger = logging.getLogger(__name__)
router = APIRouter()


# Pydantic models
class QuestionResponse(BaseModel):
    item_id: int
    german: str
    asked_language: AskedLanguage
    options: List[str]


class CardResponse(BaseModel):
    item_id: int
    german: str
    english: str
    bengali: str
    section: Optional[str] = None
    counters: Dict


class SubmitAnswerRequest(BaseModel):
    item_id: int
    answer: str = Field(min_length=1)
    asked_language: AskedLanguage


class SubmitAnswerResponse(BaseModel):
    is_correct: bool
    correct_answer: str


class SwipeRequest(BaseModel):
    item_id: int


class SwipeResponse(BaseModel):
    item_id: int
    counters: Dict


class StartSessionRequest(BaseModel):
    mode: QuizMode
    length: int = Field(default_factory=lambda: settings.default_quiz_length, ge=1)
    section: Optional[str] = None


class SessionAnswerRequest(BaseModel):
    session_token: str
    item_id: int
    answer: Optional[str] = None  # multiple choice
    is_known: Optional[bool] = None  # swipe


class SessionSkipRequest(BaseModel):
    session_token: str


class SessionResponse(BaseModel):
    session_token: str
    state: str
    position: int
    total: int
    correct: int
    result: Optional[Dict] = None
    question: Optional[Dict] = None
    card: Optional[Dict] = None
    summary: Optional[Dict] = None


def session_response(session: QuizSession, user_id: int, payload: Optional[Dict] = None,
                     result: Optional[Dict] = None) -> SessionResponse:
    summary = None
    if result is not None and "summary" in result:
        result = dict(result)
        summary = result.pop("summary")

    response = SessionResponse(
        session_token=session.to_token(user_id),
        state=session.state.value,
        position=session.position,
        total=session.target_length,
        correct=session.correct_count,
        result=result,
        summary=summary
    )
    if payload is not None:
        if session.mode == QuizMode.MULTIPLE_CHOICE:
            response.question = payload
        else:
            response.card = payload
    return response


@router.get("/next-question", response_model=QuestionResponse)
async def next_question(
        section: Optional[str] = None,
        user_id: int = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    """
    Next multiple choice question, favouring words with more mistakes
    """
    items = list_items(db, user_id, section)
    question = select_question(items)
    return QuestionResponse(**question.to_public_dict())


@router.get("/next-card", response_model=CardResponse)
async def next_card(
        section: Optional[str] = None,
        user_id: int = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    """
    Next swipe card, revealing both translations
    """
    items = list_items(db, user_id, section)
    card = select_card(items)
    return CardResponse(**card_payload(card))


@router.post("/answer", response_model=SubmitAnswerResponse)
async def submit_answer(
        request: SubmitAnswerRequest,
        user_id: int = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    """
    Check a multiple choice answer and record the result
    """
    is_correct, correct_answer, _ = progress.submit_choice_answer(
        db, user_id, request.item_id, request.answer, request.asked_language
    )
    return SubmitAnswerResponse(is_correct=is_correct, correct_answer=correct_answer)


@router.post("/mark-known", response_model=SwipeResponse)
async def mark_known(
        request: SwipeRequest,
        user_id: int = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    item = progress.record_answer(db, user_id, request.item_id, QuizMode.SWIPE, True)
    return SwipeResponse(item_id=item.id, counters=item.counters())


@router.post("/mark-unknown", response_model=SwipeResponse)
async def mark_unknown(
        request: SwipeRequest,
        user_id: int = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    item = progress.record_answer(db, user_id, request.item_id, QuizMode.SWIPE, False)
    return SwipeResponse(item_id=item.id, counters=item.counters())


@router.post("/sessions", response_model=SessionResponse)
async def start_session(
        request: StartSessionRequest,
        user_id: int = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    """
    Start a fixed-length quiz and return its first question/card
    """
    length = min(request.length, settings.max_quiz_length)
    session = QuizSession.start(request.mode, length, request.section)
    payload = next_step(db, user_id, session)

    logger.info(f"Started {request.mode.value} quiz of {length} items for user {user_id}")
    return session_response(session, user_id, payload)


@router.post("/sessions/answer", response_model=SessionResponse)
async def answer_session(
        request: SessionAnswerRequest,
        user_id: int = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    """
    Score the current item; returns the next one or the final summary
    """
    session = QuizSession.from_token(request.session_token, user_id)
    result = answer_step(db, user_id, session, request.item_id,
                         answer=request.answer, is_known=request.is_known)

    payload = None
    if not session.is_completed:
        payload = next_step(db, user_id, session)
    return session_response(session, user_id, payload, result)


@router.post("/sessions/skip", response_model=SessionResponse)
async def skip_session_item(
        request: SessionSkipRequest,
        user_id: int = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    """
    Move past the current item without scoring it
    """
    session = QuizSession.from_token(request.session_token, user_id)
    session.skip()
    payload = next_step(db, user_id, session)
    return session_response(session, user_id, payload)
