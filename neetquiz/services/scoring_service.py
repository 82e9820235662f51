"""
NEET-style scoring of quiz submissions

Fixed marking scheme: correct +4, wrong -1, skipped 0. Totals are not
clamped, so a fully wrong submission scores negative.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from neetquiz.errors import AlreadyAttempted, NotFoundError
from neetquiz.models import Question, Quiz, QuizAttempt
from neetquiz.schemas.attempt import AttemptSubmission, SubmittedAnswer

logger = logging.getLogger(__name__)

CORRECT_POINTS = 4
WRONG_POINTS = -1
SKIPPED_POINTS = 0


@dataclass
class ScoredAnswer:
    question_id: UUID
    selected_option_id: Optional[str]
    points: int
    is_correct: bool

    def to_dict(self) -> dict:
        return {
            "question_id": str(self.question_id),
            "selected_option_id": self.selected_option_id,
            "points": self.points,
            "is_correct": self.is_correct,
        }


@dataclass
class AttemptResult:
    answers: List[ScoredAnswer] = field(default_factory=list)
    total_score: int = 0
    total_possible_score: int = 0
    correct: int = 0
    wrong: int = 0
    skipped: int = 0

    @property
    def total_questions(self) -> int:
        return self.correct + self.wrong + self.skipped

    @property
    def percentage(self) -> float:
        if not self.total_possible_score:
            return 0.0
        return round(self.total_score / self.total_possible_score * 100, 2)


class ScoringService:
    """Scores a submission against a quiz's question bank"""

    def score(self, questions: Sequence[Question], submitted: Sequence[SubmittedAnswer]) -> AttemptResult:
        """
        Score every question of the quiz

        Answers for questions outside the quiz are dropped. When a question
        is answered more than once the last answer counts. A selected option
        that does not belong to the question counts as wrong.
        """
        question_ids = {str(q.id) for q in questions}
        selections: Dict[str, Optional[str]] = {}
        for answer in submitted:
            key = str(answer.question_id)
            if key not in question_ids:
                logger.debug(f"Dropping answer for unknown question {key}")
                continue
            selections[key] = answer.selected_option_id

        result = AttemptResult(total_possible_score=CORRECT_POINTS * len(questions))

        for question in questions:
            selected = selections.get(str(question.id))

            if not selected:
                result.skipped += 1
                result.answers.append(ScoredAnswer(question.id, None, SKIPPED_POINTS, False))
                continue

            option = question.find_option(selected)
            is_correct = bool(option and option.get("is_correct"))
            if is_correct:
                points = CORRECT_POINTS
                result.correct += 1
            else:
                points = WRONG_POINTS
                result.wrong += 1

            result.total_score += points
            result.answers.append(ScoredAnswer(question.id, str(selected), points, is_correct))

        return result

    def record_attempt(
        self,
        db: Session,
        user_id: UUID,
        quiz: Quiz,
        submission: AttemptSubmission
    ) -> QuizAttempt:
        """
        Score a submission and store it as a new attempt

        Raises:
            NotFoundError: a daily quiz submitted by someone other than
                its owner
            AlreadyAttempted: the user already has an attempt for this
                quiz's daily task
        """
        if quiz.is_daily_quiz and quiz.owner_id != user_id:
            raise NotFoundError("Quiz not found")

        result = self.score(quiz.questions, submission.answers)
        daily_task_id = quiz.daily_task_id if quiz.is_daily_quiz else None

        attempt = QuizAttempt(
            user_id=user_id,
            quiz_id=quiz.id,
            daily_task_id=daily_task_id,
            answers=[answer.to_dict() for answer in result.answers],
            total_score=result.total_score,
            total_possible_score=result.total_possible_score,
            correct_answers=result.correct,
            wrong_answers=result.wrong,
            skipped_questions=result.skipped,
            time_taken=submission.time_taken,
            completed_at=datetime.now(timezone.utc),
        )

        try:
            db.add(attempt)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if daily_task_id is not None:
                raise AlreadyAttempted("You have already attempted this daily challenge") from e
            raise

        db.refresh(attempt)
        logger.info(
            f"Quiz attempt saved: {attempt.id}, score: {result.total_score}/{result.total_possible_score} "
            f"(correct={result.correct}, wrong={result.wrong}, skipped={result.skipped})"
        )
        return attempt


# Global instance
scoring_service = ScoringService()
