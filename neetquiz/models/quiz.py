"""
Quiz model - generated quizzes and their ordered question references
"""
from sqlalchemy import (
    Column, String, Integer, Boolean, Text, TIMESTAMP, ForeignKey, UniqueConstraint, Uuid, func
)
from sqlalchemy.orm import relationship
from neetquiz.database import Base, JSONType
import uuid


class Quiz(Base):
    """
    Quizzes table - a quiz references questions, it does not own them.

    Retakes point at the quiz they were derived from through parent_quiz_id.
    A daily quiz is generated per user, so (owner_id, daily_task_id) is unique.
    """
    __tablename__ = "quizzes"
    __table_args__ = (
        UniqueConstraint("owner_id", "daily_task_id", name="uq_quizzes_owner_daily_task"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    context_text = Column(Text, nullable=False)
    context_embedding = Column(JSONType)
    image_url = Column(String)
    subject = Column(String(20), nullable=False)
    topic = Column(String(255), nullable=False)
    difficulty = Column(String(20), nullable=False)
    is_daily_quiz = Column(Boolean, nullable=False, default=False)
    daily_task_id = Column(Uuid, ForeignKey("daily_tasks.id"), index=True)
    parent_quiz_id = Column(Uuid, ForeignKey("quizzes.id"), index=True)
    owner_id = Column(Uuid, index=True)
    created_at = Column(TIMESTAMP, server_default=func.now())

    question_links = relationship(
        "QuizQuestion",
        order_by="QuizQuestion.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def questions(self):
        return [link.question for link in self.question_links]

    @property
    def question_ids(self):
        return [link.question_id for link in self.question_links]

    def __repr__(self):
        return f"<Quiz(id={self.id}, title={self.title}, parent={self.parent_quiz_id})>"


class QuizQuestion(Base):
    """Ordered link between a quiz and a question"""
    __tablename__ = "quiz_questions"

    quiz_id = Column(Uuid, ForeignKey("quizzes.id"), primary_key=True)
    position = Column(Integer, primary_key=True)
    question_id = Column(Uuid, ForeignKey("questions.id"), nullable=False, index=True)

    question = relationship("Question", lazy="joined")
