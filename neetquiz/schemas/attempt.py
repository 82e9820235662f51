"""
Pydantic schemas for attempt submission, results and history
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime

from neetquiz.schemas.quiz import OptionOut


class SubmittedAnswer(BaseModel):
    """One answer; selected_option_id absent means skipped"""
    question_id: UUID
    selected_option_id: Optional[str] = None


class AttemptSubmission(BaseModel):
    """Schema for quiz submission"""
    answers: List[SubmittedAnswer]
    time_taken: int = Field(..., ge=0, description="Elapsed time in seconds")


class AttemptSummary(BaseModel):
    """Response after an attempt is scored and stored"""
    success: bool = True
    message: str = "Quiz attempt saved"
    attempt_id: UUID
    quiz_id: UUID
    score: int
    max_score: int
    score_display: str  # "6/20"
    percentage: float
    correct_answers: int
    wrong_answers: int
    skipped_questions: int
    time_taken: int


class ResultRow(BaseModel):
    """Per-question view of a stored attempt"""
    question_id: UUID
    question_text: str
    options: List[OptionOut]
    correct_answer: str
    user_answer: Optional[str] = None
    is_correct: bool
    explanation: Optional[str] = None


class ResultView(BaseModel):
    """Full result of one attempt, scores read from storage"""
    attempt_id: UUID
    quiz_id: UUID
    quiz_title: str
    total_questions: int
    correct_answers: int
    wrong_answers: int
    skipped_questions: int
    total_score: int
    total_possible_score: int
    percentage: float
    time_taken: int
    completed_at: Optional[datetime] = None
    questions: List[ResultRow]


class QuizResultsResponse(BaseModel):
    quiz_id: UUID
    quiz_title: str
    attempts: List[ResultView]


class AttemptHistoryItem(BaseModel):
    attempt_id: UUID
    type: str  # daily | regular
    quiz_id: UUID
    quiz_title: str
    subject: str
    topic: str
    difficulty: str
    daily_task_id: Optional[UUID] = None
    score: int
    max_score: int
    percentage: float
    correct_answers: int
    wrong_answers: int
    skipped_questions: int
    time_taken: int
    completed_at: Optional[datetime] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class AttemptHistoryResponse(BaseModel):
    attempts: List[AttemptHistoryItem]
    pagination: Pagination
