"""
services/autosave.py

답안 버퍼 주기적 자동 저장 (Autosave Scheduler).

주기(기본 30초)마다 답안 버퍼 전체 사본을 백엔드에 보낸다.
저장은 최선 노력(best-effort): 실패해도 사용자에게 알리지 않고, 재시도/백오프도 없다.
답안 버퍼는 로컬에 그대로 남아 있으므로 다음 주기나 최종 제출 때 다시 전송된다.
"""

import asyncio
import logging
from typing import Optional

import config
from timed_assessment.errors import BackendError, SaveFailure
from timed_assessment.models.session_state import SessionPhase, SessionState

logger = logging.getLogger(__name__)


class AutosaveScheduler:
    def __init__(
        self,
        state: SessionState,
        backend,
        interval: float = config.AUTOSAVE_INTERVAL_SECONDS,
    ) -> None:
        self._state = state
        self._backend = backend
        self.interval = interval

        self._task: Optional[asyncio.Task] = None
        self._started = False
        self._stopped = False

        self.save_count = 0
        self.failure_count = 0

    @property
    def running(self) -> bool:
        return self._started and not self._stopped

    def start(self) -> None:
        if self._started or self._stopped:
            raise RuntimeError("자동 저장은 다시 시작할 수 없습니다.")
        self._started = True
        self._task = asyncio.create_task(self._run(), name=f"autosave-{self._state.attempt_id}")
        logger.info(f"[{self._state.attempt_id}] 자동 저장 시작 ({self.interval:g}초 주기)")

    def stop(self) -> None:
        """자동 저장 정지. 여러 번 호출해도 안전하다."""
        if self._stopped:
            return
        self._stopped = True
        if self._task is not None:
            self._task.cancel()
        logger.info(f"[{self._state.attempt_id}] 자동 저장 정지")

    async def wait_closed(self) -> None:
        """진행 중이던 저장 호출까지 완전히 끝날 때까지 대기."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise

    async def flush(self) -> None:
        """
        답안 버퍼 사본을 즉시 저장한다.

        Raises:
            SaveFailure: 백엔드 저장 실패.
        """
        snapshot = self._state.answers_snapshot()
        try:
            await self._backend.save_answers(self._state.attempt_id, snapshot)
        except BackendError as e:
            raise SaveFailure(str(e)) from e
        self.save_count += 1
        logger.debug(f"[{self._state.attempt_id}] 자동 저장 완료 ({len(snapshot)}개 답안)")

    async def _tick(self) -> None:
        if self._state.phase != SessionPhase.IN_PROGRESS:
            return
        try:
            await self.flush()
        except SaveFailure as e:
            # 버퍼는 그대로 유지. 다음 주기 또는 최종 제출 때 다시 보낸다.
            self.failure_count += 1
            logger.warning(f"[{self._state.attempt_id}] 자동 저장 실패 (무시): {e}")

    async def _run(self) -> None:
        while not self._stopped:
            await asyncio.sleep(self.interval)
            try:
                await self._tick()
            except Exception:
                logger.exception(f"[{self._state.attempt_id}] 자동 저장 중 예상치 못한 오류")
