"""
Pydantic schemas for daily challenge administration and participation
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import date as Date, datetime

from neetquiz.schemas.attempt import Pagination
from neetquiz.schemas.quiz import SUBJECT_PATTERN, QuizResponse


class DailyTaskCreate(BaseModel):
    """Manual daily challenge creation"""
    title: str = Field(..., min_length=1, max_length=255)
    date: datetime = Field(..., description="Any time on the target day")
    subject: str = Field(..., pattern=SUBJECT_PATTERN)
    context_text: str = Field(..., min_length=1)
    is_ai_generated: bool = False


class DailyTaskGenerate(BaseModel):
    """AI daily challenge generation for one subject"""
    subject: str = Field(..., pattern=SUBJECT_PATTERN)
    date: datetime


class DailyTaskGenerateAll(BaseModel):
    """Automated generation for every subject; defaults to tomorrow"""
    date: Optional[datetime] = None


class DailyTaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    context_text: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None


class DailyTaskResponse(BaseModel):
    id: UUID
    title: str
    date: Date
    subject: str
    context_preview: str
    is_active: bool
    is_ai_generated: bool
    created_by: UUID
    created_at: Optional[datetime] = None


class DailyTaskListResponse(BaseModel):
    daily_tasks: List[DailyTaskResponse]
    pagination: Pagination


class AvailableChallengesResponse(BaseModel):
    challenges: List[DailyTaskResponse]
    total: int


class GeneratedTasksResponse(BaseModel):
    created: List[DailyTaskResponse]
    skipped_subjects: List[str]


class DailyChallengeStartResponse(BaseModel):
    success: bool = True
    message: str = "Daily challenge started successfully"
    quiz: QuizResponse
    daily_task: DailyTaskResponse
