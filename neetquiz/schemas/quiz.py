"""
Pydantic schemas for quiz drafts, quiz requests and responses
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime

SUBJECTS = ("physics", "chemistry", "biology")
DIFFICULTIES = ("easy", "medium", "hard")

SUBJECT_PATTERN = "^(physics|chemistry|biology)$"
DIFFICULTY_PATTERN = "^(easy|medium|hard)$"


class OptionDraft(BaseModel):
    """Answer option before persistence"""
    text: str
    is_correct: bool = False
    explanation: Optional[str] = None


class QuestionDraft(BaseModel):
    """Fully-typed question produced by the synthesizer"""
    question_text: str
    options: List[OptionDraft] = []
    explanation: Optional[str] = None
    subject: str = Field(..., pattern=SUBJECT_PATTERN)
    difficulty: str = Field(..., pattern=DIFFICULTY_PATTERN)
    is_previous_year: bool = False
    year: Optional[int] = None
    embedding: Optional[List[float]] = None


class QuizDraft(BaseModel):
    """Fully-typed quiz payload, the only thing the store accepts"""
    title: str
    description: Optional[str] = None
    topic: str
    subject: str = Field(..., pattern=SUBJECT_PATTERN)
    difficulty: str = Field(..., pattern=DIFFICULTY_PATTERN)
    questions: List[QuestionDraft]
    is_fallback: bool = False


class QuizFromTextRequest(BaseModel):
    """Request schema for generating a quiz from an existing context block"""
    context_text: str = Field(..., min_length=20, description="Context block to generate from")


class OptionOut(BaseModel):
    id: str
    text: str
    is_correct: bool
    explanation: Optional[str] = None


class QuestionOut(BaseModel):
    id: UUID
    question_text: str
    options: List[OptionOut]
    explanation: Optional[str] = None
    subject: str
    difficulty: str
    is_previous_year: bool
    year: Optional[int] = None

    class Config:
        from_attributes = True


class QuizResponse(BaseModel):
    """Quiz with its questions in order"""
    quiz_id: UUID
    title: str
    description: Optional[str] = None
    subject: str
    topic: str
    difficulty: str
    is_daily_quiz: bool
    daily_task_id: Optional[UUID] = None
    parent_quiz_id: Optional[UUID] = None
    questions: List[QuestionOut]
    total_questions: int
    total_possible_score: int
    created_at: Optional[datetime] = None


class QuizFromImagesResponse(BaseModel):
    """Generated quiz plus per-image extraction diagnostics"""
    success: bool = True
    message: str
    quiz: QuizResponse
    processed_images: int
    total_images: int
    errors: List[str]
