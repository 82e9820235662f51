"""
QuizAttempt model - stores scored quiz submissions
"""
from sqlalchemy import Column, Integer, TIMESTAMP, ForeignKey, UniqueConstraint, Uuid, func
from neetquiz.database import Base, JSONType
import uuid


class QuizAttempt(Base):
    """
    Quiz attempts table - immutable once written.

    answers: [{"question_id", "selected_option_id", "points", "is_correct"}]
    in quiz question order. A user gets a single attempt per daily task;
    regular quizzes (daily_task_id NULL) allow any number.
    """
    __tablename__ = "quiz_attempts"
    __table_args__ = (
        UniqueConstraint("user_id", "daily_task_id", name="uq_quiz_attempts_user_daily_task"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    quiz_id = Column(Uuid, ForeignKey("quizzes.id"), nullable=False, index=True)
    daily_task_id = Column(Uuid, ForeignKey("daily_tasks.id"), index=True)
    answers = Column(JSONType, nullable=False)
    total_score = Column(Integer, nullable=False)
    total_possible_score = Column(Integer, nullable=False)
    correct_answers = Column(Integer, nullable=False)
    wrong_answers = Column(Integer, nullable=False)
    skipped_questions = Column(Integer, nullable=False)
    time_taken = Column(Integer, nullable=False)  # seconds
    completed_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP, server_default=func.now())

    @property
    def total_questions(self) -> int:
        return self.correct_answers + self.wrong_answers + self.skipped_questions

    def __repr__(self):
        return f"<QuizAttempt(user_id={self.user_id}, quiz_id={self.quiz_id}, score={self.total_score})>"
