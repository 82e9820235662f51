import json
import uuid
from datetime import date

import pytest

from neetquiz.errors import AlreadyAttempted, InvalidQuestion, InvariantViolation, NotFoundError
from neetquiz.models import DailyTask, Question, Quiz
from neetquiz.services.quiz_store import quiz_store, validate_question
from neetquiz.services.quiz_synthesizer import decode_quiz


def draft_from(payload):
    return decode_quiz(json.dumps(payload))


def test_persist_keeps_question_order(db, quiz_payload, user_id):
    draft = draft_from(quiz_payload())

    quiz = quiz_store.persist_quiz(db, draft, "Kinematics context", owner_id=user_id)

    assert [q.question_text for q in quiz.questions] == [q.question_text for q in draft.questions]
    assert quiz.owner_id == user_id
    assert quiz.is_daily_quiz is False
    assert db.query(Question).count() == 5
    for question in quiz.questions:
        assert len({opt["id"] for opt in question.options}) == 4
        assert sum(opt["is_correct"] for opt in question.options) == 1


def test_overrides_replace_draft_fields(db, quiz_payload):
    quiz = quiz_store.persist_quiz(
        db, draft_from(quiz_payload()), "context",
        title="Chemistry Daily", subject="chemistry", topic="Daily Challenge",
    )

    assert quiz.title == "Chemistry Daily"
    assert quiz.subject == "chemistry"
    assert quiz.topic == "Daily Challenge"
    assert all(q.subject == "chemistry" for q in quiz.questions)


@pytest.mark.parametrize("flags", [(False, False, False, False), (True, True, False, False)])
def test_wrong_number_of_correct_options_is_rejected(db, quiz_payload, flags):
    payload = quiz_payload()
    for option, flag in zip(payload["questions"][3]["options"], flags):
        option["isCorrect"] = flag

    with pytest.raises(InvalidQuestion) as exc_info:
        quiz_store.persist_quiz(db, draft_from(payload), "context")

    assert "Question 4" in exc_info.value.message
    assert db.query(Question).count() == 0
    assert db.query(Quiz).count() == 0


def test_missing_options_are_rejected(db, quiz_payload):
    payload = quiz_payload()
    del payload["questions"][0]["options"]

    with pytest.raises(InvariantViolation):
        quiz_store.persist_quiz(db, draft_from(payload), "context")

    assert db.query(Question).count() == 0


def test_three_options_are_rejected(quiz_payload):
    payload = quiz_payload()
    payload["questions"][0]["options"].pop()

    with pytest.raises(InvalidQuestion):
        validate_question(draft_from(payload).questions[0])


def test_previous_year_question_needs_a_year(quiz_payload):
    question = draft_from(quiz_payload()).questions[0]
    question.is_previous_year = True

    with pytest.raises(InvalidQuestion):
        validate_question(question)

    question.year = 2021
    validate_question(question)


def test_second_daily_quiz_for_same_owner_is_rejected(db, quiz_payload, user_id):
    task = DailyTask(
        title="Bonding", date=date(2026, 3, 1), subject="chemistry",
        context_text="Chemical bonding", created_by=uuid.uuid4(),
    )
    db.add(task)
    db.commit()

    quiz_store.persist_quiz(
        db, draft_from(quiz_payload()), "Chemical bonding",
        is_daily_quiz=True, daily_task_id=task.id, owner_id=user_id,
    )
    with pytest.raises(AlreadyAttempted):
        quiz_store.persist_quiz(
            db, draft_from(quiz_payload()), "Chemical bonding",
            is_daily_quiz=True, daily_task_id=task.id, owner_id=user_id,
        )

    assert db.query(Quiz).filter(Quiz.daily_task_id == task.id).count() == 1
    # Questions of the rejected quiz stay behind unreferenced
    assert db.query(Question).count() == 10


def test_get_quiz_unknown_id(db):
    with pytest.raises(NotFoundError):
        quiz_store.get_quiz(db, uuid.uuid4())
