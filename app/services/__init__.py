# Core services: vocabulary store, selection, progress tracking and quiz sessions
from . import auth, vocabulary, selection, progress, quiz_session

__all__ = ["auth", "vocabulary", "selection", "progress", "quiz_session"]
