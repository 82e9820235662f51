"""
Read-only assembly of per-question result views from stored attempts
"""
import logging
import math
from uuid import UUID

from sqlalchemy.orm import Session

from neetquiz.errors import InputValidationError, NotFoundError
from neetquiz.models import Quiz, QuizAttempt
from neetquiz.schemas.attempt import (
    AttemptHistoryItem, AttemptHistoryResponse, Pagination, QuizResultsResponse, ResultRow, ResultView
)
from neetquiz.schemas.quiz import OptionOut
from neetquiz.utils.cache import cache_service

logger = logging.getLogger(__name__)

HISTORY_KINDS = ("all", "daily", "regular")


def _percentage(score: int, possible: int) -> float:
    return round(score / possible * 100, 2) if possible else 0.0


class ResultService:
    """Builds result views; never re-scores, totals come from the attempt"""

    def assemble_results(self, attempt: QuizAttempt, quiz: Quiz) -> ResultView:
        """One row per quiz question, in quiz order"""
        answers = {str(a.get("question_id")): a for a in attempt.answers or []}

        rows = []
        for question in quiz.questions:
            answer = answers.get(str(question.id))
            selected = answer.get("selected_option_id") if answer else None
            option = question.find_option(selected) if selected else None
            correct = question.correct_option

            rows.append(ResultRow(
                question_id=question.id,
                question_text=question.question_text,
                options=[OptionOut(**opt) for opt in question.options],
                correct_answer=correct["text"] if correct else "Unknown",
                user_answer=option["text"] if option else None,
                is_correct=bool(option and option.get("is_correct")),
                explanation=question.explanation,
            ))

        return ResultView(
            attempt_id=attempt.id,
            quiz_id=quiz.id,
            quiz_title=quiz.title,
            total_questions=attempt.total_questions,
            correct_answers=attempt.correct_answers,
            wrong_answers=attempt.wrong_answers,
            skipped_questions=attempt.skipped_questions,
            total_score=attempt.total_score,
            total_possible_score=attempt.total_possible_score,
            percentage=_percentage(attempt.total_score, attempt.total_possible_score),
            time_taken=attempt.time_taken,
            completed_at=attempt.completed_at,
            questions=rows,
        )

    def get_attempt_results(self, db: Session, user_id: UUID, attempt_id: UUID) -> ResultView:
        attempt = db.query(QuizAttempt).filter(
            QuizAttempt.id == attempt_id,
            QuizAttempt.user_id == user_id
        ).first()
        if not attempt:
            raise NotFoundError("Quiz attempt not found")

        cache_key = cache_service.result_key(attempt.id)
        cached = cache_service.get(cache_key)
        if cached:
            return ResultView.model_validate(cached)

        quiz = db.query(Quiz).filter(Quiz.id == attempt.quiz_id).first()
        if not quiz:
            raise NotFoundError("Quiz not found")

        view = self.assemble_results(attempt, quiz)
        cache_service.set(cache_key, view.model_dump(mode="json"))
        return view

    def get_quiz_results(self, db: Session, user_id: UUID, quiz_id: UUID) -> QuizResultsResponse:
        """All of the user's attempts at a quiz, newest first"""
        quiz = db.query(Quiz).filter(Quiz.id == quiz_id).first()
        if not quiz:
            raise NotFoundError("Quiz not found")

        attempts = (
            db.query(QuizAttempt)
            .filter(QuizAttempt.user_id == user_id, QuizAttempt.quiz_id == quiz_id)
            .order_by(QuizAttempt.completed_at.desc())
            .all()
        )
        if not attempts:
            raise NotFoundError("No attempts found for this quiz")

        return QuizResultsResponse(
            quiz_id=quiz.id,
            quiz_title=quiz.title,
            attempts=[self.assemble_results(attempt, quiz) for attempt in attempts],
        )

    def attempt_history(
        self,
        db: Session,
        user_id: UUID,
        kind: str = "all",
        page: int = 1,
        limit: int = 10
    ) -> AttemptHistoryResponse:
        if kind not in HISTORY_KINDS:
            raise InputValidationError("type must be one of: all, daily, regular")

        query = (
            db.query(QuizAttempt, Quiz)
            .join(Quiz, Quiz.id == QuizAttempt.quiz_id)
            .filter(QuizAttempt.user_id == user_id)
        )
        if kind == "daily":
            query = query.filter(QuizAttempt.daily_task_id.isnot(None))
        elif kind == "regular":
            query = query.filter(QuizAttempt.daily_task_id.is_(None))

        total = query.count()
        rows = (
            query.order_by(QuizAttempt.completed_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        items = [
            AttemptHistoryItem(
                attempt_id=attempt.id,
                type="daily" if attempt.daily_task_id else "regular",
                quiz_id=quiz.id,
                quiz_title=quiz.title,
                subject=quiz.subject,
                topic=quiz.topic,
                difficulty=quiz.difficulty,
                daily_task_id=attempt.daily_task_id,
                score=attempt.total_score,
                max_score=attempt.total_possible_score,
                percentage=_percentage(attempt.total_score, attempt.total_possible_score),
                correct_answers=attempt.correct_answers,
                wrong_answers=attempt.wrong_answers,
                skipped_questions=attempt.skipped_questions,
                time_taken=attempt.time_taken,
                completed_at=attempt.completed_at,
            )
            for attempt, quiz in rows
        ]

        return AttemptHistoryResponse(
            attempts=items,
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                pages=math.ceil(total / limit) if limit else 0,
            ),
        )


# Global instance
result_service = ResultService()
