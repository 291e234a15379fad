"""
models/attempt_model.py

응시(Attempt) 및 제출 결과 모델.
백엔드 응답(JSON, camelCase)을 그대로 검증/역직렬화한다.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from timed_assessment.models.question_model import Question


class Attempt(BaseModel):
    """
    한 사용자의 한 시험 응시.

    Attributes:
        attempt_id:       응시 식별자 (불투명 문자열).
        duration_seconds: 제한 시간 (초). 백엔드는 분 단위 duration을 보낸다.
        total_questions:  전체 문항 수.
        is_submitted:     제출 여부 (false → true 단방향).
        questions:        시험 순서대로 정렬된 문항 리스트.
        started_at:       서버가 기록한 응시 시작 시각. 남은 시간 계산의 기준.
        end_time:         시험 응시 가능 기간 종료 시각.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    attempt_id: str = Field(
        ...,
        validation_alias=AliasChoices("attempt_id", "attemptId", "_id"),
    )
    test_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("test_id", "testId"),
    )
    title: str = ""
    duration_seconds: int = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("duration_seconds", "durationSeconds"),
    )
    total_questions: int = Field(
        0,
        ge=0,
        validation_alias=AliasChoices("total_questions", "totalQuestions"),
    )
    is_submitted: bool = Field(
        False,
        validation_alias=AliasChoices("is_submitted", "isSubmitted"),
    )
    questions: List[Question] = Field(default_factory=list)
    started_at: Optional[datetime] = Field(
        None,
        validation_alias=AliasChoices("started_at", "startedAt"),
    )
    end_time: Optional[datetime] = Field(
        None,
        validation_alias=AliasChoices("end_time", "endTime"),
    )

    @model_validator(mode='before')
    @classmethod
    def normalize_payload(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        # 백엔드는 duration(분)만 보낸다
        has_seconds = "duration_seconds" in data or "durationSeconds" in data
        if not has_seconds and data.get("duration") is not None:
            data["duration_seconds"] = int(float(data["duration"]) * 60)
        has_total = "total_questions" in data or "totalQuestions" in data
        if not has_total:
            data["total_questions"] = len(data.get("questions") or [])
        return data

    @field_validator('attempt_id', 'test_id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return str(v) if v is not None else v

    @model_validator(mode='after')
    def validate_questions(self) -> 'Attempt':
        numbers = [q.question_number for q in self.questions]
        if len(set(numbers)) != len(numbers):
            raise ValueError(f"문제 번호가 중복되었습니다: {numbers}")
        return self

    @property
    def question_numbers(self) -> List[int]:
        return [q.question_number for q in self.questions]


class SubmitResult(BaseModel):
    """submit 응답 요약 (채점 자체는 백엔드 책임)."""

    model_config = ConfigDict(populate_by_name=True)

    score: float = 0.0
    correct_count: int = Field(
        0,
        validation_alias=AliasChoices("correct_count", "correctCount"),
    )
    wrong_count: int = Field(
        0,
        validation_alias=AliasChoices("wrong_count", "wrongCount"),
    )


class GradedAttempt(SubmitResult):
    """
    getResult 응답 (결과 화면용). 엔진은 내용을 해석하지 않고 그대로 전달한다.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    attempt_id: str = Field(
        ...,
        validation_alias=AliasChoices("attempt_id", "attemptId", "_id"),
    )
    title: str = ""
    total_questions: int = Field(
        0,
        validation_alias=AliasChoices("total_questions", "totalQuestions"),
    )
    questions: List[Question] = Field(default_factory=list)
    submitted_at: Optional[datetime] = Field(
        None,
        validation_alias=AliasChoices("submitted_at", "submittedAt"),
    )

    @field_validator('attempt_id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        return str(v) if v is not None else v
