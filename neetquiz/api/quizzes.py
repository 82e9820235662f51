"""
Quiz generation, submission, results and retake API endpoints
"""

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
import aiofiles
import logging
import os

from neetquiz.api.deps import get_current_user_id
from neetquiz.database import get_db
from neetquiz.errors import PipelineError
from neetquiz.models import Quiz
from neetquiz.schemas.attempt import (
    AttemptHistoryResponse,
    AttemptSubmission,
    AttemptSummary,
    QuizResultsResponse,
    ResultView,
)
from neetquiz.schemas.quiz import (
    QuestionOut,
    QuizFromImagesResponse,
    QuizFromTextRequest,
    QuizResponse,
)
from neetquiz.services.extraction_service import StagedImage, extraction_service
from neetquiz.services.lineage_service import lineage_service
from neetquiz.services.quiz_store import quiz_store
from neetquiz.services.quiz_synthesizer import quiz_synthesizer
from neetquiz.services.result_service import result_service
from neetquiz.services.scoring_service import scoring_service
from neetquiz.utils.temp_files import TempFileGuard


router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])
logger = logging.getLogger(__name__)


def quiz_to_response(quiz: Quiz) -> QuizResponse:
    questions = [QuestionOut.model_validate(q) for q in quiz.questions]
    return QuizResponse(
        quiz_id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        subject=quiz.subject,
        topic=quiz.topic,
        difficulty=quiz.difficulty,
        is_daily_quiz=quiz.is_daily_quiz,
        daily_task_id=quiz.daily_task_id,
        parent_quiz_id=quiz.parent_quiz_id,
        questions=questions,
        total_questions=len(questions),
        total_possible_score=4 * len(questions),
        created_at=quiz.created_at,
    )


async def _stage_upload(upload: UploadFile, guard: TempFileGuard) -> StagedImage:
    """Write an upload to a tracked temp file"""
    filename = upload.filename or "image"
    path = guard.create(suffix=os.path.splitext(filename)[1])

    async with aiofiles.open(path, "wb") as f:
        await f.write(await upload.read())

    return StagedImage(local_path=path, original_filename=filename)


@router.post("/from-images", response_model=QuizFromImagesResponse, status_code=201)
async def quiz_from_images(
    images: List[UploadFile] = File(...),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Generate a quiz from photographed or screenshotted pages

    - Extracts text from every image (bad images are reported, not fatal)
    - Generates a five-question quiz from the merged text
    - Stores questions and quiz
    """
    try:
        with TempFileGuard() as guard:
            staged = [await _stage_upload(upload, guard) for upload in images]
            extraction = await run_in_threadpool(extraction_service.extract_text, staged, guard)

        logger.info(f"Combined text length: {len(extraction.text)}")

        draft = await run_in_threadpool(quiz_synthesizer.synthesize, extraction.text)
        quiz = quiz_store.persist_quiz(db, draft, extraction.text, owner_id=user_id)

        return QuizFromImagesResponse(
            message="Quiz generated successfully",
            quiz=quiz_to_response(quiz),
            processed_images=extraction.processed_count,
            total_images=extraction.total,
            errors=extraction.diagnostics,
        )

    except PipelineError:
        raise
    except Exception as e:
        logger.error(f"Failed to generate quiz: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to generate quiz: {str(e)}")


@router.post("/from-text", response_model=QuizResponse, status_code=201)
def quiz_from_text(
    request: QuizFromTextRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Generate a quiz from an existing context block"""
    draft = quiz_synthesizer.synthesize(request.context_text)
    quiz = quiz_store.persist_quiz(db, draft, request.context_text, owner_id=user_id)
    return quiz_to_response(quiz)


@router.get("/history", response_model=AttemptHistoryResponse)
async def attempt_history(
    type: str = Query("all", pattern="^(all|daily|regular)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """The user's attempts, newest first, filtered by daily/regular"""
    return result_service.attempt_history(db, user_id, kind=type, page=page, limit=limit)


@router.get("/attempts/{attempt_id}/results", response_model=ResultView)
async def get_attempt_results(
    attempt_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Per-question result view of one stored attempt"""
    return result_service.get_attempt_results(db, user_id, attempt_id)


@router.get("/{quiz_id}", response_model=QuizResponse)
async def get_quiz(quiz_id: UUID, db: Session = Depends(get_db)):
    return quiz_to_response(quiz_store.get_quiz(db, quiz_id))


@router.post("/{quiz_id}/attempts", response_model=AttemptSummary, status_code=201)
async def submit_attempt(
    quiz_id: UUID,
    submission: AttemptSubmission,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Submit and score a quiz

    NEET marking: +4 correct, -1 wrong, 0 skipped.
    """
    quiz = quiz_store.get_quiz(db, quiz_id)

    logger.info(f"Scoring quiz {quiz_id} for user {user_id}")
    attempt = scoring_service.record_attempt(db, user_id, quiz, submission)

    percentage = (
        round(attempt.total_score / attempt.total_possible_score * 100, 2)
        if attempt.total_possible_score else 0.0
    )

    return AttemptSummary(
        attempt_id=attempt.id,
        quiz_id=quiz.id,
        score=attempt.total_score,
        max_score=attempt.total_possible_score,
        score_display=f"{attempt.total_score}/{attempt.total_possible_score}",
        percentage=percentage,
        correct_answers=attempt.correct_answers,
        wrong_answers=attempt.wrong_answers,
        skipped_questions=attempt.skipped_questions,
        time_taken=attempt.time_taken,
    )


@router.get("/{quiz_id}/results", response_model=QuizResultsResponse)
async def get_quiz_results(
    quiz_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Result views for all of the user's attempts at this quiz"""
    return result_service.get_quiz_results(db, user_id, quiz_id)


@router.post("/{quiz_id}/retake", response_model=QuizResponse, status_code=201)
def retake_quiz(
    quiz_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """New quiz from the same context, linked to this one as its parent"""
    quiz = lineage_service.retake_quiz(db, user_id, quiz_id)
    return quiz_to_response(quiz)
