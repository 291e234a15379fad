"""
errors.py

시험 세션 엔진 예외 계층.

사용자에게 노출되는 것은 LoadFailure / SubmitFailure 뿐이며,
SaveFailure는 내부에서 로그만 남기고 삼킨다.
AlreadySubmittedError는 오류가 아니라 '이미 제출됨' 재진입 신호로 취급한다.
"""

from typing import Optional


class AssessmentError(Exception):
    """엔진 예외 기본 클래스."""


# ── 백엔드 호출 오류 ─────────────────────────────────────────────────────────

class BackendError(AssessmentError):
    """백엔드가 실패 응답을 주었거나 응답을 해석할 수 없음."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class BackendUnavailableError(BackendError):
    """네트워크 오류 / 타임아웃."""


class AttemptNotFoundError(BackendError):
    """응시 기록이 존재하지 않음 (404)."""


class AlreadySubmittedError(BackendError):
    """이미 제출된 응시에 대한 저장/제출 요청."""


# ── 세션 단계별 실패 ─────────────────────────────────────────────────────────

class LoadFailure(AssessmentError):
    """세션 진입 실패. retriable=False이면 재시도 불가(뒤로 가기만 가능)."""

    def __init__(self, message: str, retriable: bool = True):
        super().__init__(message)
        self.message = message
        self.retriable = retriable


class SaveFailure(AssessmentError):
    """자동 저장 실패. 사용자에게 노출하지 않는다."""


class SubmitFailure(AssessmentError):
    """최종 제출 실패. 답안 버퍼는 보존되며 수동 재시도 가능."""


# ── 상태 기계 위반 ───────────────────────────────────────────────────────────

class InvalidTransitionError(AssessmentError):
    """허용되지 않은 세션 단계 전이."""


class AnswerLockedError(AssessmentError):
    """진행 중(InProgress)이 아닌 세션에서 답안을 수정하려 함."""
