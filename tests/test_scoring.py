import uuid
from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from neetquiz.errors import AlreadyAttempted, NotFoundError
from neetquiz.models import DailyTask, Question, QuizAttempt
from neetquiz.schemas.attempt import AttemptSubmission, SubmittedAnswer
from neetquiz.schemas.quiz import OptionDraft, QuestionDraft, QuizDraft
from neetquiz.services.quiz_store import quiz_store
from neetquiz.services.scoring_service import scoring_service


def make_question(index=0):
    return Question(
        id=uuid.uuid4(),
        question_text=f"Question {index}",
        options=[
            {"id": f"{index}-a", "text": "A", "is_correct": True, "explanation": None},
            {"id": f"{index}-b", "text": "B", "is_correct": False, "explanation": None},
            {"id": f"{index}-c", "text": "C", "is_correct": False, "explanation": None},
            {"id": f"{index}-d", "text": "D", "is_correct": False, "explanation": None},
        ],
        subject="physics",
        difficulty="easy",
    )


def correct(question):
    return SubmittedAnswer(question_id=question.id, selected_option_id=question.correct_option["id"])


def wrong(question):
    return SubmittedAnswer(question_id=question.id, selected_option_id=question.options[1]["id"])


def skipped(question):
    return SubmittedAnswer(question_id=question.id, selected_option_id=None)


@pytest.fixture
def questions():
    return [make_question(i) for i in range(5)]


def test_mixed_submission_scores_neet_style(questions):
    q = questions
    result = scoring_service.score(q, [correct(q[0]), wrong(q[1]), skipped(q[2]), correct(q[3]), wrong(q[4])])

    assert result.total_score == 6
    assert (result.correct, result.wrong, result.skipped) == (2, 2, 1)
    assert result.total_possible_score == 20
    assert [a.points for a in result.answers] == [4, -1, 0, 4, -1]


def test_all_wrong_goes_negative(questions):
    result = scoring_service.score(questions, [wrong(q) for q in questions])

    assert result.total_score == -5
    assert result.wrong == 5


def test_missing_answers_count_as_skipped(questions):
    result = scoring_service.score(questions, [correct(questions[0])])

    assert result.correct == 1
    assert result.skipped == 4
    assert result.total_score == 4
    assert len(result.answers) == 5


def test_unknown_question_ids_are_dropped(questions):
    stranger = make_question(99)
    result = scoring_service.score(questions, [correct(stranger), correct(questions[0])])

    assert result.total_questions == 5
    assert result.total_score == 4
    assert str(stranger.id) not in {str(a.question_id) for a in result.answers}


def test_last_answer_for_a_question_wins(questions):
    result = scoring_service.score(questions, [wrong(questions[0]), correct(questions[0])])

    assert result.correct == 1
    assert result.wrong == 0


def test_option_from_another_question_counts_as_wrong(questions):
    foreign = SubmittedAnswer(question_id=questions[0].id, selected_option_id=questions[1].correct_option["id"])
    result = scoring_service.score(questions, [foreign])

    assert result.wrong == 1
    assert result.total_score == -1


@pytest.mark.parametrize("pattern", [
    "ccccc", "wwwww", "sssss", "cwscw", "ccwws", "scsws",
])
def test_totals_are_consistent(questions, pattern):
    makers = {"c": correct, "w": wrong, "s": skipped}
    answers = [makers[p](q) for p, q in zip(pattern, questions)]
    result = scoring_service.score(questions, answers)

    assert result.total_score == 4 * result.correct - result.wrong
    assert result.correct + result.wrong + result.skipped == len(questions)
    assert result.total_score == sum(a.points for a in result.answers)
    assert result.total_possible_score == 4 * len(questions)


def _draft():
    return QuizDraft(
        title="Optics",
        topic="Lenses",
        subject="physics",
        difficulty="medium",
        questions=[
            QuestionDraft(
                question_text=f"Lens question {i}",
                options=[OptionDraft(text=t, is_correct=(t == "convex")) for t in ("convex", "concave", "plane", "prism")],
                explanation="Converging lenses are convex.",
                subject="physics",
                difficulty="medium",
            )
            for i in range(5)
        ],
    )


def test_record_attempt_persists_totals(db, user_id):
    quiz = quiz_store.persist_quiz(db, _draft(), "Optics context")
    answers = [
        SubmittedAnswer(question_id=q.id, selected_option_id=q.correct_option["id"])
        for q in quiz.questions[:3]
    ]

    attempt = scoring_service.record_attempt(
        db, user_id, quiz, AttemptSubmission(answers=answers, time_taken=90)
    )

    assert attempt.total_score == 12
    assert attempt.total_possible_score == 20
    assert attempt.skipped_questions == 2
    assert attempt.daily_task_id is None
    assert attempt.completed_at is not None
    assert [a["question_id"] for a in attempt.answers] == [str(q.id) for q in quiz.questions]


def test_regular_quiz_allows_repeat_attempts(db, user_id):
    quiz = quiz_store.persist_quiz(db, _draft(), "Optics context")
    submission = AttemptSubmission(answers=[], time_taken=10)

    scoring_service.record_attempt(db, user_id, quiz, submission)
    scoring_service.record_attempt(db, user_id, quiz, submission)

    assert db.query(QuizAttempt).count() == 2


def test_second_attempt_on_daily_task_is_rejected(db, user_id):
    task = DailyTask(
        title="Optics", date=date(2026, 1, 5), subject="physics",
        context_text="Optics context", created_by=uuid.uuid4(),
    )
    db.add(task)
    db.commit()
    quiz = quiz_store.persist_quiz(
        db, _draft(), task.context_text, is_daily_quiz=True, daily_task_id=task.id, owner_id=user_id
    )
    submission = AttemptSubmission(answers=[], time_taken=10)

    first = scoring_service.record_attempt(db, user_id, quiz, submission)
    assert first.daily_task_id == task.id

    with pytest.raises(AlreadyAttempted):
        scoring_service.record_attempt(db, user_id, quiz, submission)
    assert db.query(QuizAttempt).count() == 1


def test_daily_quiz_only_accepts_its_owner(db, user_id):
    task = DailyTask(
        title="Optics", date=date(2026, 1, 6), subject="physics",
        context_text="Optics context", created_by=uuid.uuid4(),
    )
    db.add(task)
    db.commit()
    quiz = quiz_store.persist_quiz(
        db, _draft(), task.context_text, is_daily_quiz=True, daily_task_id=task.id, owner_id=user_id
    )
    submission = AttemptSubmission(answers=[], time_taken=10)

    with pytest.raises(NotFoundError):
        scoring_service.record_attempt(db, uuid.uuid4(), quiz, submission)

    assert db.query(QuizAttempt).count() == 0
    scoring_service.record_attempt(db, user_id, quiz, submission)
    assert db.query(QuizAttempt).count() == 1


def test_storage_failure_on_regular_quiz_is_not_a_conflict(db, user_id, monkeypatch):
    quiz = quiz_store.persist_quiz(db, _draft(), "Optics context")

    def failing_commit():
        raise IntegrityError("INSERT INTO quiz_attempts", {}, Exception("FOREIGN KEY constraint failed"))

    monkeypatch.setattr(db, "commit", failing_commit)

    with pytest.raises(IntegrityError):
        scoring_service.record_attempt(db, user_id, quiz, AttemptSubmission(answers=[], time_taken=10))
