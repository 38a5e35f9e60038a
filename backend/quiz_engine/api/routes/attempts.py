from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from quiz_engine.core.errors import Result
from quiz_engine.db.session import get_db
from quiz_engine.schemas.attempts import AnswerIn, AttemptStartIn, SubmissionOut
from quiz_engine.services import attempt_service, quiz_reports
from quiz_engine.services.quiz_resolver import resolve_quiz_definition
from quiz_engine.tasks.auto_submit_tasks import schedule_auto_submit


router = APIRouter(tags=["attempts"])


STATUS_BY_CODE = {
    "INVALID_STATE": 409,
    "NOT_FOUND": 404,
    "TYPE_MISMATCH": 422,
    "VALIDATION_ERROR": 400,
    "TIME_LIMIT_EXCEEDED": 409,
    "INFRASTRUCTURE_ERROR": 503,
}


def _unwrap(result: Result) -> Any:
    if not result.ok:
        err = result.error
        raise HTTPException(status_code=STATUS_BY_CODE.get(err.code, 400), detail=err.to_dict())
    return result.value


def _submission(sub) -> Dict[str, Any]:
    return SubmissionOut.model_validate(sub).model_dump(mode="json")


def _ok(request: Request, data: Any) -> Dict[str, Any]:
    return {"request_id": request.state.request_id, "data": data, "error": None}


@router.post("/attempts/start")
def start_attempt(request: Request, payload: AttemptStartIn, db: Session = Depends(get_db)) -> Dict[str, Any]:
    attempt_number = payload.attempt_number
    if attempt_number is None:
        attempt_number = _unwrap(
            attempt_service.next_attempt_number(db, quiz_id=payload.quiz_id, student_id=payload.student_id)
        )

    sub = _unwrap(
        attempt_service.start_attempt(
            db,
            quiz_id=payload.quiz_id,
            student_id=payload.student_id,
            enrollment_id=payload.enrollment_id,
            attempt_number=attempt_number,
            now=datetime.now(timezone.utc),
            course_module_link_id=payload.course_module_link_id,
        )
    )

    quiz = resolve_quiz_definition(db, sub.quiz_id)
    auto_submit = schedule_auto_submit(sub, quiz)
    return _ok(request, {"submission": _submission(sub), "auto_submit": auto_submit})


@router.get("/attempts/{submission_id}")
def get_attempt(request: Request, submission_id: int, db: Session = Depends(get_db)) -> Dict[str, Any]:
    sub = _unwrap(attempt_service.get_attempt(db, submission_id=submission_id))
    return _ok(request, _submission(sub))


@router.delete("/attempts/{submission_id}")
def delete_attempt(request: Request, submission_id: int, db: Session = Depends(get_db)) -> Dict[str, Any]:
    deleted = _unwrap(attempt_service.delete_attempt(db, submission_id=submission_id))
    return _ok(request, {"submission_id": deleted, "deleted": True})


@router.put("/attempts/{submission_id}/answers/{question_id}")
def answer_question(
    request: Request,
    submission_id: int,
    question_id: str,
    payload: AnswerIn,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    answers = _unwrap(
        attempt_service.answer_question(
            db,
            submission_id=submission_id,
            question_id=question_id,
            answer=payload.model_dump(),
        )
    )
    return _ok(request, {"submission_id": submission_id, "answers": answers})


@router.delete("/attempts/{submission_id}/answers/{question_id}")
def remove_answer(request: Request, submission_id: int, question_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    answers = _unwrap(attempt_service.remove_answer(db, submission_id=submission_id, question_id=question_id))
    return _ok(request, {"submission_id": submission_id, "answers": answers})


@router.post("/attempts/{submission_id}/flags/{question_id}")
def flag_question(request: Request, submission_id: int, question_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    flags = _unwrap(attempt_service.flag_question(db, submission_id=submission_id, question_id=question_id))
    return _ok(request, {"submission_id": submission_id, "flagged_questions": flags})


@router.delete("/attempts/{submission_id}/flags/{question_id}")
def unflag_question(request: Request, submission_id: int, question_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    flags = _unwrap(attempt_service.unflag_question(db, submission_id=submission_id, question_id=question_id))
    return _ok(request, {"submission_id": submission_id, "flagged_questions": flags})


@router.post("/attempts/{submission_id}/complete")
def complete_attempt(request: Request, submission_id: int, db: Session = Depends(get_db)) -> Dict[str, Any]:
    sub = _unwrap(
        attempt_service.complete_attempt(db, submission_id=submission_id, now=datetime.now(timezone.utc))
    )
    return _ok(request, _submission(sub))


@router.get("/quizzes/{quiz_id}/attempts")
def list_attempts(
    request: Request,
    quiz_id: int,
    student_id: Optional[int] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    subs = _unwrap(attempt_service.list_attempts(db, quiz_id=quiz_id, student_id=student_id, status=status))
    return _ok(request, [_submission(s) for s in subs])


@router.get("/quizzes/{quiz_id}/grades-report")
def grades_report(request: Request, quiz_id: int, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return _ok(request, _unwrap(quiz_reports.grades_report(db, quiz_id=quiz_id)))


@router.get("/quizzes/{quiz_id}/statistics")
def statistics_report(request: Request, quiz_id: int, db: Session = Depends(get_db)) -> Dict[str, Any]:
    return _ok(request, _unwrap(quiz_reports.statistics_report(db, quiz_id=quiz_id)))
