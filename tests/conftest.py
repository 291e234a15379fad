"""
테스트 공통 픽스처 — 가짜 백엔드와 응시 데이터 생성기
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from timed_assessment.errors import (
    AlreadySubmittedError,
    AttemptNotFoundError,
    BackendUnavailableError,
)
from timed_assessment.models.attempt_model import Attempt, GradedAttempt, SubmitResult
from timed_assessment.services.assessment_session import AssessmentSession

FIXED_NOW = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


def make_question(number: int, user_answer: Optional[str] = None, correct: Optional[str] = None) -> dict:
    return {
        "questionNumber": number,
        "questionText": {"english": f"Question {number}", "hindi": f"प्रश्न {number}"},
        "options": [
            {"key": k, "english": f"Option {k}", "hindi": f"विकल्प {k}"} for k in ("A", "B", "C", "D")
        ],
        "userAnswer": user_answer,
        "correctAnswer": correct,
    }


def make_attempt_payload(
    attempt_id: str = "att-1",
    questions: int = 5,
    duration_minutes: float = 30,
    elapsed_seconds: Optional[float] = 0,
    submitted: bool = False,
    user_answers: Optional[Dict[int, str]] = None,
) -> dict:
    """백엔드 GET /attempt/:id 의 data 부분."""
    user_answers = user_answers or {}
    payload = {
        "_id": attempt_id,
        "testId": "test-1",
        "title": "모의고사 1회",
        "duration": duration_minutes,
        "isSubmitted": submitted,
        "questions": [make_question(n, user_answers.get(n)) for n in range(1, questions + 1)],
    }
    if elapsed_seconds is not None:
        payload["startedAt"] = (FIXED_NOW - timedelta(seconds=elapsed_seconds)).isoformat()
    return payload


# 실제 백엔드 응답 본문 (GET /attempt/:id, POST /attempt/:id/submit)
ATTEMPT_RESPONSE = {
    "success": True,
    "data": {
        "attemptId": "665f1c2e9b1d4a0012a3b4c5",
        "testId": "665f1b009b1d4a0012a3b4aa",
        "title": "Prelims Mock Test 7",
        "duration": 120,
        "negativeMarking": 0.66,
        "startTime": "2026-03-01T08:00:00.000Z",
        "endTime": "2026-03-01T20:00:00.000Z",
        "totalQuestions": 2,
        "questions": [
            {
                "_id": "665f1b009b1d4a0012a3b4b1",
                "questionNumber": 1,
                "questionText": {
                    "english": "Which Article deals with the Finance Commission?",
                    "hindi": "वित्त आयोग से कौन सा अनुच्छेद संबंधित है?",
                },
                "options": [
                    {"key": "A", "english": "Article 280", "hindi": "अनुच्छेद 280"},
                    {"key": "B", "english": "Article 324", "hindi": "अनुच्छेद 324"},
                    {"key": "C", "english": "Article 352", "hindi": "अनुच्छेद 352"},
                    {"key": "D", "english": "Article 368", "hindi": "अनुच्छेद 368"},
                ],
                "userAnswer": "A",
            },
            {
                "_id": "665f1b009b1d4a0012a3b4b2",
                "questionNumber": 2,
                "questionText": {"english": "Capital of Assam?", "hindi": "असम की राजधानी?"},
                "options": [
                    {"key": "A", "english": "Guwahati", "hindi": "गुवाहाटी"},
                    {"key": "B", "english": "Dispur", "hindi": "दिसपुर"},
                    {"key": "C", "english": "Shillong", "hindi": "शिलांग"},
                    {"key": "D", "english": "Imphal", "hindi": "इंफाल"},
                ],
                "userAnswer": None,
            },
        ],
        "isSubmitted": False,
        "startedAt": "2026-03-01T08:30:00.000Z",
    },
}

SUBMIT_RESPONSE = {
    "success": True,
    "message": "Test submitted successfully",
    "data": {
        "attemptId": "665f1c2e9b1d4a0012a3b4c5",
        "testId": "665f1b009b1d4a0012a3b4aa",
        "title": "Prelims Mock Test 7",
        "totalQuestions": 2,
        "score": 2,
        "correctCount": 1,
        "wrongCount": 0,
        "questions": [
            {
                "questionNumber": 1,
                "questionText": ATTEMPT_RESPONSE["data"]["questions"][0]["questionText"],
                "options": ATTEMPT_RESPONSE["data"]["questions"][0]["options"],
                "correctAnswer": "A",
                "userAnswer": "A",
                "explanation": "Article 280 provides for a Finance Commission.",
                "isCorrect": True,
            },
            {
                "questionNumber": 2,
                "questionText": ATTEMPT_RESPONSE["data"]["questions"][1]["questionText"],
                "options": ATTEMPT_RESPONSE["data"]["questions"][1]["options"],
                "correctAnswer": "B",
                "userAnswer": None,
                "explanation": "",
                "isCorrect": None,
            },
        ],
        "submittedAt": "2026-03-01T09:10:00.000Z",
    },
}


class FakeBackend:
    """BackendClient와 같은 메서드를 가진 인메모리 백엔드. 호출 기록을 남긴다."""

    def __init__(self):
        self.attempts: Dict[str, dict] = {}
        self.saved: List[tuple] = []
        self.submits: List[str] = []
        self.started: List[str] = []
        self.load_error: Optional[Exception] = None
        self.fail_save = False
        self.fail_submit = False
        self.already_submitted = False
        self.save_delay = 0.0
        self.submit_delay = 0.0

    def add(self, payload: dict) -> str:
        self.attempts[str(payload["_id"])] = payload
        return str(payload["_id"])

    async def start_attempt(self, test_id: str) -> str:
        if test_id == "missing":
            raise AttemptNotFoundError("Test not found", 404)
        self.started.append(test_id)
        return self.add(make_attempt_payload(attempt_id=f"att-{test_id}"))

    async def load_attempt(self, attempt_id: str) -> Attempt:
        if self.load_error is not None:
            raise self.load_error
        if attempt_id not in self.attempts:
            raise AttemptNotFoundError("Attempt not found", 404)
        return Attempt.model_validate(self.attempts[attempt_id])

    async def save_answers(self, attempt_id: str, answers: Dict[int, str]) -> None:
        if self.save_delay:
            await asyncio.sleep(self.save_delay)
        if self.fail_save:
            raise BackendUnavailableError("connection refused")
        self.saved.append((attempt_id, dict(answers)))

    async def submit(self, attempt_id: str) -> SubmitResult:
        self.submits.append(attempt_id)
        if self.submit_delay:
            await asyncio.sleep(self.submit_delay)
        if self.already_submitted:
            raise AlreadySubmittedError("Test already submitted", 400)
        if self.fail_submit:
            raise BackendUnavailableError("connection reset")
        answered = len(self.saved[-1][1]) if self.saved else 0
        self.attempts[attempt_id]["isSubmitted"] = True
        return SubmitResult(score=answered * 2, correct_count=answered, wrong_count=0)

    async def get_result(self, attempt_id: str) -> GradedAttempt:
        if attempt_id not in self.attempts:
            raise AttemptNotFoundError("Attempt not found", 404)
        data = dict(self.attempts[attempt_id])
        return GradedAttempt.model_validate({**data, "score": 4, "correctCount": 2, "wrongCount": 1})


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def make_session(backend):
    """AssessmentSession 생성기. 현재 시각은 FIXED_NOW로 고정."""

    def _make(attempt_id: str = "att-1", autosave_interval: float = 30, tick: float = 0.01):
        return AssessmentSession(
            attempt_id,
            backend,
            autosave_interval=autosave_interval,
            tick=tick,
            now=lambda: FIXED_NOW,
        )

    return _make
