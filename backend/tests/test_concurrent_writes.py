import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from quiz_engine.db.base import Base
from quiz_engine.models.quiz_submission import QuizSubmission
from quiz_engine.services import attempt_service, submission_store
from quiz_engine.services.quiz_resolver import save_quiz_definition


T0 = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture()
def file_sessions(tmp_path):
    # A real file so each session gets its own connection and SQLite's locking applies.
    engine = create_engine(
        f"sqlite:///{tmp_path / 'attempts.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    try:
        yield Session
    finally:
        engine.dispose()


@pytest.fixture()
def started(file_sessions, mixed_questions):
    db = file_sessions()
    try:
        quiz = save_quiz_definition(
            db,
            title="Race",
            config={"version": "v2", "pages": [{"id": "p1", "questions": mixed_questions}]},
        )
        res = attempt_service.start_attempt(
            db, quiz_id=quiz.id, student_id=7, enrollment_id=3, attempt_number=1, now=T0
        )
        assert res.ok, res.error
        return res.value.id
    finally:
        db.close()


@pytest.fixture()
def lockstep(monkeypatch, started):
    """Hold both writers after their read until each has read the same row version.

    Depends on ``started`` so the attempt is created before the patch applies.
    """
    barrier = threading.Barrier(2, timeout=10)
    seen = threading.local()
    real = attempt_service.resolve_quiz_definition

    def _resolve(db, quiz_id):
        quiz = real(db, quiz_id)
        if not getattr(seen, "waited", False):
            seen.waited = True
            barrier.wait()
        return quiz

    monkeypatch.setattr(attempt_service, "resolve_quiz_definition", _resolve)


def _in_threads(file_sessions, *calls):
    def _run(call):
        db = file_sessions()
        try:
            return call(db)
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return [f.result() for f in [pool.submit(_run, c) for c in calls]]


def test_double_completion_only_one_wins(file_sessions, started, lockstep):
    def _complete(db):
        return attempt_service.complete_attempt(db, submission_id=started, now=T0 + timedelta(minutes=1))

    results = _in_threads(file_sessions, _complete, _complete)

    assert sorted(r.ok for r in results) == [False, True]
    loser = next(r for r in results if not r.ok)
    assert loser.error.code == "INVALID_STATE"

    db = file_sessions()
    try:
        stored = db.get(QuizSubmission, started)
        assert stored.status == "completed"
        assert stored.version_id == 2
    finally:
        db.close()


def test_concurrent_answers_are_both_kept(file_sessions, started, lockstep):
    def _answer(question_id, type_, value):
        def _call(db):
            return attempt_service.answer_question(
                db, submission_id=started, question_id=question_id, answer={"type": type_, "value": value}
            )

        return _call

    results = _in_threads(
        file_sessions,
        _answer("q1", "multiple-choice", "b"),
        _answer("q2", "choice", ["a", "c"]),
    )

    assert all(r.ok for r in results), [r.error for r in results]

    db = file_sessions()
    try:
        stored = db.get(QuizSubmission, started)
        assert sorted(a["question_id"] for a in stored.answers_json) == ["q1", "q2"]
    finally:
        db.close()


def test_update_retries_after_interleaved_write(file_sessions, started):
    db = file_sessions()
    other = file_sessions()
    calls = []

    def _apply(sub):
        calls.append(sub.version_id)
        if len(calls) == 1:
            # Another writer commits between our read and our flush.
            row = other.get(QuizSubmission, started)
            row.flagged_questions_json = ["q3"]
            other.commit()
        sub.answers_json = list(sub.answers_json or []) + [{"question_id": "q1", "question_type": "multiple-choice"}]

    try:
        sub, _ = submission_store.update_submission(db, started, _apply)
    finally:
        db.close()
        other.close()

    assert calls == [1, 2]
    assert sub.flagged_questions_json == ["q3"]
    assert [a["question_id"] for a in sub.answers_json] == ["q1"]
    assert sub.version_id == 3
