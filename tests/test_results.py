import json
import uuid

import pytest

from neetquiz.errors import InputValidationError, NotFoundError
from neetquiz.schemas.attempt import AttemptSubmission, SubmittedAnswer
from neetquiz.services.quiz_store import quiz_store
from neetquiz.services.quiz_synthesizer import decode_quiz
from neetquiz.services.result_service import result_service
from neetquiz.services.scoring_service import scoring_service


@pytest.fixture
def quiz(db, quiz_payload, user_id):
    return quiz_store.persist_quiz(db, decode_quiz(json.dumps(quiz_payload())), "Kinematics", owner_id=user_id)


def submit(db, user_id, quiz, picks, time_taken=60):
    """picks: per question, "c" correct, "w" wrong, "s" skipped"""
    answers = []
    for pick, question in zip(picks, quiz.questions):
        if pick == "c":
            answers.append(SubmittedAnswer(question_id=question.id, selected_option_id=question.correct_option["id"]))
        elif pick == "w":
            wrong = next(opt for opt in question.options if not opt["is_correct"])
            answers.append(SubmittedAnswer(question_id=question.id, selected_option_id=wrong["id"]))
        else:
            answers.append(SubmittedAnswer(question_id=question.id, selected_option_id=None))
    return scoring_service.record_attempt(db, user_id, quiz, AttemptSubmission(answers=answers, time_taken=time_taken))


def test_rows_follow_quiz_order(db, quiz, user_id):
    attempt = submit(db, user_id, quiz, "cwscw")

    view = result_service.assemble_results(attempt, quiz)

    assert [row.question_id for row in view.questions] == quiz.question_ids
    assert [row.is_correct for row in view.questions] == [True, False, False, True, False]
    skipped = view.questions[2]
    assert skipped.user_answer is None
    assert skipped.correct_answer == "m/s"
    assert view.questions[1].user_answer == "m/s^2"
    assert view.questions[0].explanation == "Velocity is displacement per unit time."


def test_totals_come_from_stored_attempt(db, quiz, user_id):
    attempt = submit(db, user_id, quiz, "cwscw", time_taken=120)

    view = result_service.assemble_results(attempt, quiz)

    assert (view.total_score, view.total_possible_score) == (6, 20)
    assert (view.correct_answers, view.wrong_answers, view.skipped_questions) == (2, 2, 1)
    assert view.total_questions == 5
    assert view.percentage == 30.0
    assert view.time_taken == 120

    # A stored total is reported as is, never recomputed
    attempt.total_score = 13
    assert result_service.assemble_results(attempt, quiz).total_score == 13


def test_assembly_is_deterministic(db, quiz, user_id):
    attempt = submit(db, user_id, quiz, "ccwss")

    first = result_service.assemble_results(attempt, quiz).model_dump_json()
    second = result_service.assemble_results(attempt, quiz).model_dump_json()

    assert first == second


def test_attempt_results_are_scoped_to_the_user(db, quiz, user_id):
    attempt = submit(db, user_id, quiz, "ccccc")

    view = result_service.get_attempt_results(db, user_id, attempt.id)
    assert view.total_score == 20

    with pytest.raises(NotFoundError):
        result_service.get_attempt_results(db, uuid.uuid4(), attempt.id)


def test_quiz_results_without_attempts(db, quiz, user_id):
    with pytest.raises(NotFoundError):
        result_service.get_quiz_results(db, user_id, quiz.id)

    with pytest.raises(NotFoundError):
        result_service.get_quiz_results(db, user_id, uuid.uuid4())


def test_quiz_results_list_every_attempt(db, quiz, user_id):
    submit(db, user_id, quiz, "wwwww")
    submit(db, user_id, quiz, "ccccc")

    results = result_service.get_quiz_results(db, user_id, quiz.id)

    assert results.quiz_id == quiz.id
    assert sorted(view.total_score for view in results.attempts) == [-5, 20]


def test_history_filters_by_kind(db, quiz, user_id):
    submit(db, user_id, quiz, "ccsss")

    history = result_service.attempt_history(db, user_id)
    assert history.pagination.total == 1
    assert history.attempts[0].type == "regular"
    assert history.attempts[0].score == 8

    assert result_service.attempt_history(db, user_id, kind="daily").attempts == []

    with pytest.raises(InputValidationError):
        result_service.attempt_history(db, user_id, kind="weekly")
