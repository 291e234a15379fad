"""
models/session_state.py

한 응시(attempt)의 세션 전체 상태를 담는 OMR 카드 모델 (Session Store).
Pydantic BaseModel 기반. 세션 단계(phase) 상태 기계와 답안 버퍼를 소유한다.
UI 코드 없음, 네트워크 호출 없음.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, Field

from timed_assessment.errors import InvalidTransitionError
from timed_assessment.models.attempt_model import Attempt, SubmitResult
from timed_assessment.models.question_model import Question

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    EXPIRED = "expired"
    ERROR = "error"


class SubmitReason(str, Enum):
    MANUAL = "manual"
    EXPIRED = "expired"


class ErrorKind(str, Enum):
    LOAD = "load"
    SUBMIT = "submit"


# 허용 전이표. SUBMITTED는 흡수 상태, ERROR는 retriable일 때만 빠져나간다.
PHASE_TRANSITIONS: Dict[SessionPhase, Set[SessionPhase]] = {
    SessionPhase.LOADING: {SessionPhase.IN_PROGRESS, SessionPhase.SUBMITTED, SessionPhase.ERROR},
    SessionPhase.IN_PROGRESS: {SessionPhase.SUBMITTING, SessionPhase.EXPIRED},
    SessionPhase.EXPIRED: {SessionPhase.SUBMITTING},
    SessionPhase.SUBMITTING: {SessionPhase.SUBMITTED, SessionPhase.ERROR},
    SessionPhase.SUBMITTED: set(),
    SessionPhase.ERROR: {SessionPhase.LOADING, SessionPhase.SUBMITTING},
}


class ErrorInfo(BaseModel):
    """사용자에게 노출되는 오류 (LoadFailure / SubmitFailure)."""

    kind: ErrorKind
    message: str
    retriable: bool = True


class SessionState(BaseModel):
    """
    사용자의 시험 세션 전체 상태를 표현하는 모델.

    Attributes:
        attempt_id:          응시 식별자. 세션 레지스트리의 키.
        attempt:             로더가 가져온 응시 정보. 로딩 전/실패 시 None.
        phase:               세션 단계 (상태 기계).
        current_quest_index: 현재 화면에 표시 중인 문제 인덱스 (0-based).
        user_answers:        답안 버퍼. {question_number: 선택한 보기 키}
                             키가 없으면 미응답이다.
        remaining_budget:    로드 시점에 계산된 남은 시간 (초).
        submit_reason:       제출 계기 (수동 / 시간 만료).
        result:              제출 성공 시 백엔드가 돌려준 요약.
        error:               Error 단계일 때의 오류 정보.
        phase_history:       거쳐 온 단계 기록 (디버깅용).
    """

    attempt_id: str
    attempt: Optional[Attempt] = None
    phase: SessionPhase = SessionPhase.LOADING
    current_quest_index: int = Field(
        default=0,
        ge=0,
        description="현재 풀고 있는 문제 인덱스 (0-based)"
    )
    user_answers: Dict[int, str] = Field(
        default_factory=dict,
        description="답안 버퍼. key: question_number, value: 선택한 보기 키"
    )
    remaining_budget: int = Field(
        default=0,
        ge=0,
        description="로드 시점 기준 남은 시간 (초)"
    )
    submit_reason: Optional[SubmitReason] = None
    result: Optional[SubmitResult] = None
    error: Optional[ErrorInfo] = None
    phase_history: List[SessionPhase] = Field(
        default_factory=lambda: [SessionPhase.LOADING]
    )

    @property
    def questions(self) -> List[Question]:
        return list(self.attempt.questions) if self.attempt else []

    @property
    def total(self) -> int:
        return len(self.attempt.questions) if self.attempt else 0

    @property
    def is_terminal(self) -> bool:
        if self.phase == SessionPhase.SUBMITTED:
            return True
        return self.phase == SessionPhase.ERROR and not (self.error and self.error.retriable)

    def can_transition(self, target: SessionPhase) -> bool:
        if target not in PHASE_TRANSITIONS[self.phase]:
            return False
        if self.phase != SessionPhase.ERROR:
            return True
        # Error에서는 같은 종류의 재시도만 허용
        if not self.error or not self.error.retriable:
            return False
        if target == SessionPhase.LOADING:
            return self.error.kind == ErrorKind.LOAD
        return self.error.kind == ErrorKind.SUBMIT

    def transition(self, target: SessionPhase) -> None:
        """단계 전이. 허용되지 않으면 InvalidTransitionError."""
        if not self.can_transition(target):
            raise InvalidTransitionError(
                f"[{self.attempt_id}] {self.phase.value} → {target.value} 전이는 허용되지 않습니다."
            )
        logger.info(f"[{self.attempt_id}] 단계 전이: {self.phase.value} → {target.value}")
        if self.phase == SessionPhase.ERROR:
            self.error = None
        self.phase = target
        self.phase_history.append(target)

    def fail(self, kind: ErrorKind, message: str, retriable: bool = True) -> None:
        """Error 단계로 전이하며 오류 정보를 기록."""
        self.transition(SessionPhase.ERROR)
        self.error = ErrorInfo(kind=kind, message=message, retriable=retriable)

    def answers_snapshot(self) -> Dict[int, str]:
        """저장/제출용 답안 버퍼 사본."""
        return dict(self.user_answers)
