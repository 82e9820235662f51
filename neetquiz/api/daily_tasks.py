"""
Daily challenge API endpoints (participation and administration)
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional
from uuid import UUID
import logging
import math

from neetquiz.api.deps import get_admin_user_id, get_current_user_id
from neetquiz.api.quizzes import quiz_to_response
from neetquiz.database import get_db
from neetquiz.models import DailyTask
from neetquiz.schemas.attempt import Pagination
from neetquiz.schemas.daily_task import (
    AvailableChallengesResponse,
    DailyChallengeStartResponse,
    DailyTaskCreate,
    DailyTaskGenerate,
    DailyTaskGenerateAll,
    DailyTaskListResponse,
    DailyTaskResponse,
    DailyTaskUpdate,
    GeneratedTasksResponse,
)
from neetquiz.schemas.quiz import SUBJECT_PATTERN
from neetquiz.services.lineage_service import lineage_service

router = APIRouter(prefix="/api/daily-tasks", tags=["daily-tasks"])
logger = logging.getLogger(__name__)


def task_to_response(task: DailyTask) -> DailyTaskResponse:
    preview = task.context_text if len(task.context_text) <= 100 else task.context_text[:100] + "..."
    return DailyTaskResponse(
        id=task.id,
        title=task.title,
        date=task.date,
        subject=task.subject,
        context_preview=preview,
        is_active=task.is_active,
        is_ai_generated=task.is_ai_generated,
        created_by=task.created_by,
        created_at=task.created_at,
    )


@router.get("/available", response_model=AvailableChallengesResponse)
async def available_challenges(
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Today's active daily challenges the user has not started"""
    tasks = lineage_service.available_daily_tasks(db, user_id)
    return AvailableChallengesResponse(
        challenges=[task_to_response(task) for task in tasks],
        total=len(tasks),
    )


@router.post("/{task_id}/start", response_model=DailyChallengeStartResponse, status_code=201)
def start_daily_challenge(
    task_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Generate the user's quiz for a daily challenge

    A user can start each daily challenge once.
    """
    quiz, task = lineage_service.start_daily_challenge(db, user_id, task_id)
    return DailyChallengeStartResponse(
        quiz=quiz_to_response(quiz),
        daily_task=task_to_response(task),
    )


@router.post("/admin", response_model=DailyTaskResponse, status_code=201)
async def create_daily_task(
    request: DailyTaskCreate,
    admin_id: UUID = Depends(get_admin_user_id),
    db: Session = Depends(get_db),
):
    """Create a daily challenge from a hand-written context"""
    task = lineage_service.create_daily_task(
        db,
        title=request.title,
        day=request.date,
        subject=request.subject,
        context_text=request.context_text,
        created_by=admin_id,
        is_ai_generated=request.is_ai_generated,
    )
    return task_to_response(task)


@router.post("/admin/generate", response_model=DailyTaskResponse, status_code=201)
def generate_daily_task(
    request: DailyTaskGenerate,
    admin_id: UUID = Depends(get_admin_user_id),
    db: Session = Depends(get_db),
):
    """Create a daily challenge whose context is written by the generative engine"""
    task = lineage_service.generate_daily_task(db, request.subject, request.date, admin_id)
    return task_to_response(task)


@router.post("/admin/generate-all", response_model=GeneratedTasksResponse, status_code=201)
def generate_all_daily_tasks(
    request: DailyTaskGenerateAll,
    admin_id: UUID = Depends(get_admin_user_id),
    db: Session = Depends(get_db),
):
    """Fill every free subject slot for a date (tomorrow by default)"""
    created, skipped = lineage_service.generate_daily_tasks_for_date(db, request.date, admin_id)
    return GeneratedTasksResponse(
        created=[task_to_response(task) for task in created],
        skipped_subjects=skipped,
    )


@router.get("/admin", response_model=DailyTaskListResponse)
async def list_daily_tasks(
    day: Optional[date] = Query(None, alias="date"),
    subject: Optional[str] = Query(None, pattern=SUBJECT_PATTERN),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    admin_id: UUID = Depends(get_admin_user_id),
    db: Session = Depends(get_db),
):
    tasks, total = lineage_service.list_daily_tasks(db, day, subject, page, limit)
    return DailyTaskListResponse(
        daily_tasks=[task_to_response(task) for task in tasks],
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


@router.put("/admin/{task_id}", response_model=DailyTaskResponse)
async def update_daily_task(
    task_id: UUID,
    request: DailyTaskUpdate,
    admin_id: UUID = Depends(get_admin_user_id),
    db: Session = Depends(get_db),
):
    """Edit title/context or toggle the active flag (soft retire)"""
    task = lineage_service.update_daily_task(
        db,
        task_id,
        title=request.title,
        context_text=request.context_text,
        is_active=request.is_active,
    )
    return task_to_response(task)


@router.delete("/admin/{task_id}")
async def delete_daily_task(
    task_id: UUID,
    admin_id: UUID = Depends(get_admin_user_id),
    db: Session = Depends(get_db),
):
    lineage_service.delete_daily_task(db, task_id)
    return {"success": True, "message": "Daily challenge deleted successfully"}
