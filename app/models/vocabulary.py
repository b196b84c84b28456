from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from app.database import Base


class VocabularyItem(Base):
    __tablename__ = "vocabulary_items"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    section = Column(String, nullable=True, index=True)

    german = Column(String, nullable=False)
    english = Column(String, nullable=False)
    bengali = Column(String, nullable=False)

    # Multiple choice quiz (mode A)
    choice_attempts = Column(Integer, nullable=False, default=0, server_default="0")
    choice_correct = Column(Integer, nullable=False, default=0, server_default="0")
    choice_mistakes = Column(Integer, nullable=False, default=0, server_default="0")

    # Swipe drill (mode B)
    swipe_attempts = Column(Integer, nullable=False, default=0, server_default="0")
    swipe_known = Column(Integer, nullable=False, default=0, server_default="0")
    swipe_unknown = Column(Integer, nullable=False, default=0, server_default="0")

    practice_count = Column(Integer, nullable=False, default=0, server_default="0")
    last_practiced_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User", back_populates="vocabulary_items")

    def __repr__(self):
        return f"<VocabularyItem(id={self.id}, german='{self.german}', user_id={self.user_id})>"

    @property
    def combined_mistakes(self):
        """Mistakes across both quiz modes"""
        return (self.choice_mistakes or 0) + (self.swipe_unknown or 0)

    def translation(self, language: str) -> str:
        """Get the translation for 'english' or 'bengali'"""
        if language == "english":
            return self.english
        if language == "bengali":
            return self.bengali
        raise ValueError(f"Unknown language: {language}")

    def counters(self) -> dict:
        """Progress counters as a plain dict"""
        return {
            "choice_attempts": self.choice_attempts,
            "choice_correct": self.choice_correct,
            "choice_mistakes": self.choice_mistakes,
            "swipe_attempts": self.swipe_attempts,
            "swipe_known": self.swipe_known,
            "swipe_unknown": self.swipe_unknown,
            "practice_count": self.practice_count,
            "last_practiced_at": self.last_practiced_at.isoformat() if self.last_practiced_at else None,
        }
