"""
services/submission.py

최종 제출 상태 기계 (Submission Coordinator).

  InProgress ──(수동 제출 확인)──────────────→ Submitting ─→ Submitted
  InProgress ──(타이머 0)─→ Expired ─────────→ Submitting ─→ Error ─(수동 재시도)─→ Submitting

수동 제출과 시간 만료는 모두 submit() 한 곳으로 들어온다.
전이 가능 여부 확인과 Submitting 진입은 await 없이 한 번에 처리되므로,
이미 제출 중일 때 들어온 두 번째 트리거는 중복 제출이 아니라 무시(no-op)된다.

Submitting 내부 순서 (반드시 순차):
  1. 타이머/자동 저장 정지, 진행 중인 자동 저장 종료 대기
  2. 답안 버퍼 사본 최종 저장
  3. submit 호출
"""

import logging
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel

from timed_assessment.errors import AlreadySubmittedError, BackendError, SubmitFailure
from timed_assessment.models.session_state import (
    ErrorKind,
    SessionPhase,
    SessionState,
    SubmitReason,
)

logger = logging.getLogger(__name__)


class SubmitConfirmation(BaseModel):
    """수동 제출 전 확인 창 내용."""

    attempted: int
    unanswered: int
    total: int
    message: str


class SubmissionCoordinator:
    """
    Args:
        state:       세션 상태 (단계 + 답안 버퍼).
        backend:     save_answers / submit 을 제공하는 백엔드 클라이언트.
        end_session: 타이머/자동 저장을 멈추는 동기 함수 (멱등).
        wait_quiet:  진행 중인 자동 저장이 끝날 때까지 기다리는 코루틴 함수.
    """

    def __init__(
        self,
        state: SessionState,
        backend,
        end_session: Callable[[], None],
        wait_quiet: Callable[[], Awaitable[None]],
    ) -> None:
        self._state = state
        self._backend = backend
        self._end_session = end_session
        self._wait_quiet = wait_quiet
        self.last_failure: Optional[SubmitFailure] = None

    @property
    def in_flight(self) -> bool:
        return self._state.phase == SessionPhase.SUBMITTING

    def prepare_submit(self) -> SubmitConfirmation:
        """수동 제출 확인 창 내용을 만든다. 상태는 바꾸지 않는다."""
        total = self._state.total
        attempted = len(self._state.user_answers)
        unanswered = total - attempted
        if attempted == 0:
            message = "아직 답한 문제가 없습니다. 그래도 제출하시겠습니까?"
        elif unanswered > 0:
            message = (
                f"{total}문제 중 {attempted}문제에 답했습니다 (미응답 {unanswered}개). "
                "제출 후에는 답을 바꿀 수 없습니다. 그래도 제출하시겠습니까?"
            )
        else:
            message = f"{total}문제 모두 답했습니다. 제출 후에는 답을 바꿀 수 없습니다. 제출하시겠습니까?"
        return SubmitConfirmation(
            attempted=attempted, unanswered=unanswered, total=total, message=message
        )

    async def expire(self) -> None:
        """타이머 만료 콜백."""
        await self.submit(SubmitReason.EXPIRED)

    async def submit(self, reason: SubmitReason = SubmitReason.MANUAL) -> bool:
        """
        단일 제출 진입점.

        Returns:
            True:  이번 호출로 Submitted에 도달
            False: 무시됨(이미 제출 중/완료) 또는 제출 실패(Error)
        """
        if not self._claim(reason):
            return False
        return await self._run_submission()

    # ── 내부 ─────────────────────────────────────────────────────────────

    def _claim(self, reason: SubmitReason) -> bool:
        # await 없이 확인 + 전이: 동시에 들어온 트리거 중 하나만 통과한다
        state = self._state
        if reason == SubmitReason.EXPIRED:
            if state.phase != SessionPhase.IN_PROGRESS:
                logger.info(f"[{state.attempt_id}] 시간 만료 트리거 무시 (현재 단계: {state.phase.value})")
                return False
            state.transition(SessionPhase.EXPIRED)
        elif not state.can_transition(SessionPhase.SUBMITTING):
            logger.info(f"[{state.attempt_id}] 제출 트리거 무시 (현재 단계: {state.phase.value})")
            return False

        state.transition(SessionPhase.SUBMITTING)
        if state.submit_reason is None:
            state.submit_reason = reason
        self._end_session()
        return True

    async def _run_submission(self) -> bool:
        state = self._state
        await self._wait_quiet()

        snapshot = state.answers_snapshot()
        logger.info(
            f"[{state.attempt_id}] 최종 제출 시작 (사유: {state.submit_reason.value}, "
            f"답안 {len(snapshot)}/{state.total}개)"
        )
        try:
            await self._backend.save_answers(state.attempt_id, snapshot)
            result = await self._backend.submit(state.attempt_id)
        except AlreadySubmittedError:
            # 응답 유실 후 재시도 등으로 서버에는 이미 제출됨
            logger.info(f"[{state.attempt_id}] 서버에 이미 제출된 응시, 제출 완료로 처리합니다.")
            result = None
        except BackendError as e:
            self.last_failure = SubmitFailure(str(e))
            logger.error(f"[{state.attempt_id}] 최종 제출 실패: {e}")
            state.fail(ErrorKind.SUBMIT, "제출에 실패했습니다. 답안은 보존되어 있으니 다시 시도해 주세요.")
            return False

        self.last_failure = None
        state.result = result
        state.transition(SessionPhase.SUBMITTED)
        if result is not None:
            logger.info(
                f"[{state.attempt_id}] 제출 완료: 점수 {result.score}, "
                f"정답 {result.correct_count}, 오답 {result.wrong_count}"
            )
        return True
