from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AttemptStartIn(BaseModel):
    quiz_id: int = Field(ge=1)
    student_id: int = Field(ge=1)
    enrollment_id: int = Field(ge=1)
    # Defaults to the next free attempt number for the student.
    attempt_number: Optional[int] = None
    course_module_link_id: Optional[int] = None


class AnswerIn(BaseModel):
    type: str
    value: Any = None


class SubmissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quiz_id: int
    course_module_link_id: Optional[int] = None
    student_id: int
    enrollment_id: int
    attempt_number: int
    status: str
    started_at: datetime
    submitted_at: Optional[datetime] = None
    time_spent_minutes: Optional[float] = None
    answers: List[Dict[str, Any]] = Field(default_factory=list, validation_alias="answers_json")
    flagged_questions: List[str] = Field(default_factory=list, validation_alias="flagged_questions_json")

    total_score: Optional[float] = None
    max_score: Optional[float] = None
    percentage: Optional[float] = None
    question_results: List[Dict[str, Any]] = Field(default_factory=list, validation_alias="question_results_json")
    grading_feedback: Optional[str] = None
    auto_graded: bool = False
    needs_manual_grading: bool = False
    graded_at: Optional[datetime] = None
