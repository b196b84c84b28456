from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import List
import logging

from app.database import get_db
from app.services.auth import get_current_user_id
from app.services.progress import compute_stats
from app.services.vocabulary import list_items

logger = logging.getLogger(__name__)
router = APIRouter()


# Pydantic models
class MistakenWordResponse(BaseModel):
    item_id: int
    german: str
    english: str
    bengali: str
    choice_mistakes: int
    swipe_unknown: int
    combined_mistakes: int


class StatsResponse(BaseModel):
    total_items: int
    total_choice_attempts: int
    total_choice_correct: int
    total_choice_mistakes: int
    words_with_choice_mistakes: int
    choice_success_rate: float
    average_choice_mistakes: float
    total_swipe_attempts: int
    total_swipe_known: int
    total_swipe_unknown: int
    words_with_swipe_unknown: int
    swipe_success_rate: float
    average_swipe_unknown: float
    total_practice_count: int
    combined_mistakes: int
    average_combined_mistakes: float
    overall_success_rate: float
    most_mistaken: List[MistakenWordResponse]


@router.get("", response_model=StatsResponse)
async def get_stats(
        user_id: int = Depends(get_current_user_id),
        db: Session = Depends(get_db)
):
    """
    Aggregate quiz statistics and the most mistaken words
    """
    items = list_items(db, user_id)
    return StatsResponse(**compute_stats(items).to_dict())
