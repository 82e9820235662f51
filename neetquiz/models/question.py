"""
Question model - one multiple-choice item with embedded options
"""
from sqlalchemy import Column, String, Integer, Boolean, Text, TIMESTAMP, Uuid, func
from neetquiz.database import Base, JSONType
import uuid


class Question(Base):
    """
    Questions table - options are stored inline as
    [{"id": str, "text": str, "is_correct": bool, "explanation": str | None}]
    """
    __tablename__ = "questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_text = Column(Text, nullable=False)
    options = Column(JSONType, nullable=False)
    explanation = Column(Text)
    image_url = Column(String)
    subject = Column(String(20), nullable=False, index=True)
    difficulty = Column(String(20), nullable=False)
    is_previous_year = Column(Boolean, nullable=False, default=False)
    year = Column(Integer)
    embedding = Column(JSONType)  # NULL until an embedding is computed
    created_at = Column(TIMESTAMP, server_default=func.now())

    @property
    def correct_option(self):
        return next((opt for opt in self.options or [] if opt.get("is_correct")), None)

    def find_option(self, option_id):
        return next(
            (opt for opt in self.options or [] if str(opt.get("id")) == str(option_id)),
            None
        )

    def __repr__(self):
        return f"<Question(id={self.id}, subject={self.subject}, difficulty={self.difficulty})>"
