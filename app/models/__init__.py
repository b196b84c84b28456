from app.models.user import User
from app.models.vocabulary import VocabularyItem

__all__ = [
    "User",
    "VocabularyItem"
]
