"""
Daily challenge and retake lineage

Guards the uniqueness rules around daily tasks and builds retake chains.
Every uniqueness rule is checked up front for a clear error and is also
backed by a database constraint, so racing requests still fail cleanly.
"""
import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from neetquiz.errors import (
    AlreadyAttempted, ConflictError, DuplicateDailyTask, InputValidationError, NotFoundError
)
from neetquiz.models import DailyTask, Quiz, QuizAttempt
from neetquiz.schemas.quiz import SUBJECTS
from neetquiz.services.quiz_store import QuizStore, quiz_store
from neetquiz.services.quiz_synthesizer import QuizSynthesizer, quiz_synthesizer

logger = logging.getLogger(__name__)

SYSTEM_USER_ID = UUID("00000000-0000-0000-0000-000000000000")


def normalize_day(value: Union[date, datetime]) -> date:
    """Truncate to day granularity"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise InputValidationError(f"Invalid date: {value!r}")


def _validate_subject(subject: str) -> None:
    if subject not in SUBJECTS:
        raise InputValidationError("Invalid subject. Must be physics, chemistry, or biology")


class LineageService:
    """Daily task administration, daily challenge starts and retakes"""

    def __init__(
        self,
        synthesizer: Optional[QuizSynthesizer] = None,
        store: Optional[QuizStore] = None
    ):
        self.synthesizer = synthesizer or quiz_synthesizer
        self.store = store or quiz_store

    # ------------------------------------------------------------------
    # Daily tasks
    # ------------------------------------------------------------------

    def get_daily_task(self, db: Session, task_id: UUID) -> DailyTask:
        task = db.query(DailyTask).filter(DailyTask.id == task_id).first()
        if not task:
            raise NotFoundError("Daily challenge not found")
        return task

    def ensure_slot_free(
        self,
        db: Session,
        day: date,
        subject: str,
        exclude_id: Optional[UUID] = None
    ) -> None:
        """Raise DuplicateDailyTask if an active task occupies (day, subject)"""
        query = db.query(DailyTask).filter(
            DailyTask.date == day,
            DailyTask.subject == subject,
            DailyTask.is_active.is_(True),
        )
        if exclude_id is not None:
            query = query.filter(DailyTask.id != exclude_id)

        if query.first():
            raise DuplicateDailyTask("A daily challenge already exists for this date and subject")

    def create_daily_task(
        self,
        db: Session,
        *,
        title: str,
        day: Union[date, datetime],
        subject: str,
        context_text: str,
        created_by: UUID,
        is_ai_generated: bool = False,
    ) -> DailyTask:
        _validate_subject(subject)
        if not title or not title.strip() or not context_text or not context_text.strip():
            raise InputValidationError("Title, date, subject, and context_text are required")

        day = normalize_day(day)
        self.ensure_slot_free(db, day, subject)

        task = DailyTask(
            title=title.strip(),
            date=day,
            subject=subject,
            context_text=context_text.strip(),
            context_embedding=None,
            is_active=True,
            is_ai_generated=is_ai_generated,
            created_by=created_by,
        )

        try:
            db.add(task)
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise DuplicateDailyTask("A daily challenge already exists for this date and subject") from e

        db.refresh(task)
        logger.info(f"Daily task created: {task.id} ({subject} on {day})")
        return task

    def generate_daily_task(
        self,
        db: Session,
        subject: str,
        day: Union[date, datetime],
        created_by: UUID
    ) -> DailyTask:
        """Create a daily task whose context is written by the generative engine"""
        _validate_subject(subject)
        day = normalize_day(day)
        # Checked before the engine call so an occupied slot costs nothing
        self.ensure_slot_free(db, day, subject)

        title, context_text = self.synthesizer.generate_daily_context(subject)
        return self.create_daily_task(
            db,
            title=title,
            day=day,
            subject=subject,
            context_text=context_text,
            created_by=created_by,
            is_ai_generated=True,
        )

    def generate_daily_tasks_for_date(
        self,
        db: Session,
        day: Optional[Union[date, datetime]] = None,
        created_by: UUID = SYSTEM_USER_ID
    ) -> Tuple[List[DailyTask], List[str]]:
        """
        Automated generation for every subject (defaults to tomorrow)

        Returns:
            Tuple of (created tasks, subjects skipped because occupied)
        """
        day = normalize_day(day) if day is not None else date.today() + timedelta(days=1)
        created, skipped = [], []

        for subject in SUBJECTS:
            try:
                created.append(self.generate_daily_task(db, subject, day, created_by))
            except DuplicateDailyTask:
                logger.info(f"Daily challenge already exists for {subject} on {day}")
                skipped.append(subject)

        return created, skipped

    def list_daily_tasks(
        self,
        db: Session,
        day: Optional[Union[date, datetime]] = None,
        subject: Optional[str] = None,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[DailyTask], int]:
        query = db.query(DailyTask)
        if day is not None:
            query = query.filter(DailyTask.date == normalize_day(day))
        if subject:
            _validate_subject(subject)
            query = query.filter(DailyTask.subject == subject)

        total = query.count()
        tasks = (
            query.order_by(DailyTask.date.desc(), DailyTask.subject.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return tasks, total

    def update_daily_task(
        self,
        db: Session,
        task_id: UUID,
        title: Optional[str] = None,
        context_text: Optional[str] = None,
        is_active: Optional[bool] = None
    ) -> DailyTask:
        """Administrative edit; reactivation must not collide with another active task"""
        task = self.get_daily_task(db, task_id)

        if is_active and not task.is_active:
            self.ensure_slot_free(db, task.date, task.subject, exclude_id=task.id)

        if title:
            task.title = title
        if context_text:
            task.context_text = context_text
        if is_active is not None:
            task.is_active = is_active

        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise DuplicateDailyTask("A daily challenge already exists for this date and subject") from e

        db.refresh(task)
        logger.info(f"Daily task updated: {task.id} (active={task.is_active})")
        return task

    def delete_daily_task(self, db: Session, task_id: UUID) -> None:
        """Hard delete, only allowed while nothing references the task"""
        task = self.get_daily_task(db, task_id)

        attempt_count = db.query(QuizAttempt).filter(QuizAttempt.daily_task_id == task.id).count()
        if attempt_count > 0:
            raise ConflictError(
                "Cannot delete daily challenge that has been attempted by users; deactivate it instead"
            )

        quiz_count = db.query(Quiz).filter(Quiz.daily_task_id == task.id).count()
        if quiz_count > 0:
            raise ConflictError(
                "Cannot delete daily challenge that has been started by users; deactivate it instead"
            )

        db.delete(task)
        db.commit()
        logger.info(f"Daily task deleted: {task_id}")

    def available_daily_tasks(
        self,
        db: Session,
        user_id: UUID,
        today: Optional[date] = None
    ) -> List[DailyTask]:
        """Today's active tasks the user has not started yet"""
        today = today or date.today()
        tasks = (
            db.query(DailyTask)
            .filter(DailyTask.date == today, DailyTask.is_active.is_(True))
            .order_by(DailyTask.subject.asc())
            .all()
        )
        if not tasks:
            return []

        task_ids = [task.id for task in tasks]
        started = {
            row[0] for row in db.query(Quiz.daily_task_id)
            .filter(Quiz.owner_id == user_id, Quiz.daily_task_id.in_(task_ids))
        }
        started |= {
            row[0] for row in db.query(QuizAttempt.daily_task_id)
            .filter(QuizAttempt.user_id == user_id, QuizAttempt.daily_task_id.in_(task_ids))
        }
        return [task for task in tasks if task.id not in started]

    # ------------------------------------------------------------------
    # Quiz lineage
    # ------------------------------------------------------------------

    def start_daily_challenge(self, db: Session, user_id: UUID, task_id: UUID) -> Tuple[Quiz, DailyTask]:
        """
        Generate the user's quiz for a daily task

        Raises:
            NotFoundError: task missing or no longer active
            AlreadyAttempted: the user already started this task
        """
        task = self.get_daily_task(db, task_id)
        if not task.is_active:
            raise NotFoundError("Daily challenge not found")

        existing = db.query(Quiz).filter(
            Quiz.owner_id == user_id,
            Quiz.daily_task_id == task.id
        ).first()
        if existing:
            raise AlreadyAttempted("You have already attempted this daily challenge")

        attempted = db.query(QuizAttempt).filter(
            QuizAttempt.user_id == user_id,
            QuizAttempt.daily_task_id == task.id
        ).first()
        if attempted:
            raise AlreadyAttempted("You have already attempted this daily challenge")

        draft = self.synthesizer.synthesize(task.context_text)
        quiz = self.store.persist_quiz(
            db,
            draft,
            task.context_text,
            title=task.title,
            description=f"Daily challenge for {task.subject}",
            subject=task.subject,
            topic="Daily Challenge",
            difficulty="medium",
            context_embedding=task.context_embedding,
            is_daily_quiz=True,
            daily_task_id=task.id,
            owner_id=user_id,
        )
        logger.info(f"Daily challenge {task.id} started by {user_id}: quiz {quiz.id}")
        return quiz, task

    def retake_quiz(self, db: Session, user_id: UUID, quiz_id: UUID) -> Quiz:
        """
        Create a new quiz from the parent's context with fresh questions

        The parent's question texts are passed to the engine as things to
        avoid; the engine may still repeat them.
        """
        parent = self.store.get_quiz(db, quiz_id)
        avoid = [question.question_text for question in parent.questions]

        draft = self.synthesizer.synthesize(parent.context_text, avoid_questions=avoid)
        quiz = self.store.persist_quiz(
            db,
            draft,
            parent.context_text,
            title=f"{parent.title} (Retake)",
            description=parent.description,
            subject=parent.subject,
            topic=parent.topic,
            difficulty=parent.difficulty,
            context_embedding=parent.context_embedding,
            is_daily_quiz=False,
            parent_quiz_id=parent.id,
            owner_id=user_id,
        )
        logger.info(f"Retake {quiz.id} created from quiz {parent.id}")
        return quiz


# Global instance
lineage_service = LineageService()
