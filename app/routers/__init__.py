# Router imports for the vocabulary learning app
from . import auth, vocab, quiz, stats

__all__ = ["auth", "vocab", "quiz", "stats"]
