"""
Persistence of synthesized quizzes and their questions
"""
import logging
import uuid
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from neetquiz.errors import AlreadyAttempted, InvalidQuestion, NotFoundError
from neetquiz.models import Question, Quiz, QuizQuestion
from neetquiz.schemas.quiz import QuestionDraft, QuizDraft

logger = logging.getLogger(__name__)

MIN_OPTIONS = 4


def validate_question(draft: QuestionDraft, position: Optional[int] = None) -> None:
    """
    Reject questions that break the model invariants

    Raises:
        InvalidQuestion: not exactly one correct option, fewer than four
            options, or a previous-year question without a year
    """
    label = f"Question {position}" if position is not None else "Question"

    if len(draft.options) < MIN_OPTIONS:
        raise InvalidQuestion(
            f"{label} has {len(draft.options)} options, at least {MIN_OPTIONS} required"
        )

    correct = sum(1 for opt in draft.options if opt.is_correct)
    if correct != 1:
        raise InvalidQuestion(f"{label} must have exactly one correct option, found {correct}")

    if draft.is_previous_year and draft.year is None:
        raise InvalidQuestion(f"{label} is marked previous-year but has no year")


class QuizStore:
    """Writes questions first, then the quiz that references them"""

    def persist_quiz(
        self,
        db: Session,
        draft: QuizDraft,
        context_text: str,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        subject: Optional[str] = None,
        topic: Optional[str] = None,
        difficulty: Optional[str] = None,
        context_embedding=None,
        is_daily_quiz: bool = False,
        daily_task_id: Optional[UUID] = None,
        parent_quiz_id: Optional[UUID] = None,
        owner_id: Optional[UUID] = None,
    ) -> Quiz:
        """
        Persist a quiz draft

        Keyword overrides replace the draft's quiz-level fields (daily
        challenges and retakes keep their source's title and subject).
        Questions are committed before the quiz; if the quiz insert fails
        the questions stay behind unreferenced, but no quiz ever points at
        missing questions.
        """
        for position, question in enumerate(draft.questions, start=1):
            validate_question(question, position)

        questions = [
            Question(
                question_text=q.question_text,
                options=[
                    {
                        "id": str(uuid.uuid4()),
                        "text": opt.text,
                        "is_correct": opt.is_correct,
                        "explanation": opt.explanation,
                    }
                    for opt in q.options
                ],
                explanation=q.explanation,
                subject=subject or q.subject,
                difficulty=q.difficulty,
                is_previous_year=q.is_previous_year,
                year=q.year,
                embedding=q.embedding,
            )
            for q in draft.questions
        ]

        try:
            db.add_all(questions)
            db.commit()
        except Exception:
            db.rollback()
            raise

        quiz = Quiz(
            title=title or draft.title,
            description=description if description is not None else draft.description,
            context_text=context_text,
            context_embedding=context_embedding,
            subject=subject or draft.subject,
            topic=topic or draft.topic,
            difficulty=difficulty or draft.difficulty,
            is_daily_quiz=is_daily_quiz,
            daily_task_id=daily_task_id,
            parent_quiz_id=parent_quiz_id,
            owner_id=owner_id,
        )
        quiz.question_links = [
            QuizQuestion(position=position, question_id=question.id)
            for position, question in enumerate(questions)
        ]

        try:
            db.add(quiz)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"Quiz insert rejected, {len(questions)} questions left unreferenced: {str(e)}")
            if daily_task_id is not None:
                raise AlreadyAttempted("You have already attempted this daily challenge") from e
            raise
        except Exception:
            db.rollback()
            logger.error(f"Quiz insert failed, {len(questions)} questions left unreferenced")
            raise

        db.refresh(quiz)
        logger.info(f"Quiz created: {quiz.id} ({len(questions)} questions, fallback={draft.is_fallback})")
        return quiz

    def get_quiz(self, db: Session, quiz_id: UUID) -> Quiz:
        quiz = db.query(Quiz).filter(Quiz.id == quiz_id).first()
        if not quiz:
            raise NotFoundError("Quiz not found")
        return quiz


# Global instance
quiz_store = QuizStore()
