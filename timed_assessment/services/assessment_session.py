"""
services/assessment_session.py

응시 하나에 대한 세션 엔진. 로더, 타이머, 자동 저장, 네비게이션, 제출 코디네이터를
한 세션 상태(SessionState) 위에 묶는다.

세션 종료 경로(수동 제출, 시간 만료, 페이지 이탈)는 모두 _end_session()으로 모인다.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from pydantic import BaseModel

import config
from timed_assessment.errors import AssessmentError, LoadFailure, SaveFailure
from timed_assessment.models.session_state import (
    ErrorKind,
    SessionPhase,
    SessionState,
    SubmitReason,
)
from timed_assessment.services.autosave import AutosaveScheduler
from timed_assessment.services.navigation import NavigationController
from timed_assessment.services.session_loader import load_session
from timed_assessment.services.submission import SubmissionCoordinator, SubmitConfirmation
from timed_assessment.services.timer import TimerController

logger = logging.getLogger(__name__)


class SubmitOutcome(BaseModel):
    """submit() 결과. confirmation이 있으면 아직 제출하지 않은 것."""

    submitted: bool = False
    phase: SessionPhase
    confirmation: Optional[SubmitConfirmation] = None


class AssessmentSession:
    """
    Args:
        attempt_id:        응시 식별자.
        backend:           BackendClient (또는 같은 메서드를 가진 객체).
        autosave_interval: 자동 저장 주기 (초).
        tick:              타이머 확인 주기 (초).
        now:               현재 시각 함수 (남은 시간 계산용).
        clock:             타이머 단조 시계 함수.
    """

    def __init__(
        self,
        attempt_id: str,
        backend,
        autosave_interval: float = config.AUTOSAVE_INTERVAL_SECONDS,
        tick: float = config.TIMER_TICK_SECONDS,
        now: Optional[Callable[[], datetime]] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.attempt_id = attempt_id
        self._backend = backend
        self._autosave_interval = autosave_interval
        self._tick = tick
        self._now = now
        self._clock = clock

        self.state = SessionState(attempt_id=attempt_id)
        self.navigation = NavigationController(self.state)
        self.timer: Optional[TimerController] = None
        self.autosave: Optional[AutosaveScheduler] = None
        self.coordinator = SubmissionCoordinator(
            self.state,
            backend,
            end_session=self._end_session,
            wait_quiet=self._wait_quiet,
        )
        self.closed = False

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    @property
    def result_url(self) -> Optional[str]:
        if self.state.phase == SessionPhase.SUBMITTED:
            return f"/result/{self.attempt_id}"
        return None

    # ── 진입 ─────────────────────────────────────────────────────────────

    async def open(self) -> SessionPhase:
        """
        응시를 불러와 세션을 시작한다.

        Loading → InProgress : 진행 중 응시. 타이머/자동 저장 시작.
        Loading → Submitted  : 이미 제출된 응시. 타이머를 시작하지 않는다.
        Loading → Error      : 로드 실패. 부분 상태를 만들지 않는다.
        """
        if self.closed:
            raise AssessmentError(f"[{self.attempt_id}] 이미 종료된 세션입니다.")
        if self.state.phase == SessionPhase.ERROR and self.state.can_transition(SessionPhase.LOADING):
            self.state.transition(SessionPhase.LOADING)
        elif self.state.phase != SessionPhase.LOADING:
            # 제출 실패(Error)는 답안 버퍼를 그대로 두고 재제출을 기다린다
            return self.state.phase

        try:
            loaded = await load_session(self._backend, self.attempt_id, now=self._now)
        except LoadFailure as e:
            self.state.fail(ErrorKind.LOAD, e.message, retriable=e.retriable)
            return self.state.phase

        self.state.attempt = loaded.attempt
        if loaded.already_submitted:
            self.state.transition(SessionPhase.SUBMITTED)
            return self.state.phase

        self.state.user_answers = dict(loaded.answers)
        self.state.current_quest_index = 0
        self.state.remaining_budget = loaded.remaining_seconds
        self.state.transition(SessionPhase.IN_PROGRESS)

        self.autosave = AutosaveScheduler(self.state, self._backend, interval=self._autosave_interval)
        self.timer = TimerController(
            loaded.remaining_seconds,
            on_expire=self.coordinator.expire,
            tick=self._tick,
            clock=self._clock,
            name=self.attempt_id,
        )
        self.autosave.start()
        self.timer.start()
        return self.state.phase

    # ── 조회 ─────────────────────────────────────────────────────────────

    def remaining_seconds(self) -> int:
        if self.timer is None:
            return self.state.remaining_budget if self.state.phase == SessionPhase.LOADING else 0
        return self.timer.remaining_seconds()

    # ── 사용자 입력 ───────────────────────────────────────────────────────

    def select_answer(self, option_key: str) -> None:
        self.navigation.select(option_key)

    def clear_answer(self) -> None:
        self.navigation.clear()

    def prepare_submit(self) -> SubmitConfirmation:
        return self.coordinator.prepare_submit()

    async def submit(self, confirmed: bool = False) -> SubmitOutcome:
        """
        수동 제출. 확인(confirmed) 없이 호출하면 확인 창 내용만 돌려준다.
        답이 하나도 없어도 확인 후에는 빈 답안으로 제출한다.
        Error(제출 실패) 상태에서 다시 호출하면 재시도가 된다.
        """
        if not confirmed:
            return SubmitOutcome(phase=self.state.phase, confirmation=self.prepare_submit())
        submitted = await self.coordinator.submit(SubmitReason.MANUAL)
        return SubmitOutcome(submitted=submitted, phase=self.state.phase)

    # ── 종료 ─────────────────────────────────────────────────────────────

    async def close(self) -> None:
        """
        페이지 이탈. 타이머/자동 저장을 멈추고, 진행 중이었다면
        마지막으로 한 번 저장을 시도한다 (실패는 무시). 여러 번 호출해도 안전하다.
        """
        if self.closed:
            return
        self.closed = True
        self._end_session()
        await self._wait_quiet()
        if self.timer is not None:
            # 이미 시작된 만료 제출은 끝까지 기다린다
            await self.timer.join()
        if self.state.phase == SessionPhase.IN_PROGRESS and self.autosave is not None:
            try:
                await self.autosave.flush()
            except SaveFailure as e:
                logger.warning(f"[{self.attempt_id}] 종료 전 저장 실패 (무시): {e}")
        logger.info(f"[{self.attempt_id}] 세션 종료 (단계: {self.state.phase.value})")

    def _end_session(self) -> None:
        if self.timer is not None:
            self.timer.stop()
        if self.autosave is not None:
            self.autosave.stop()

    async def _wait_quiet(self) -> None:
        if self.autosave is not None:
            await self.autosave.wait_closed()
