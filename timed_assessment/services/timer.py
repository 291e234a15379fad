"""
services/timer.py

시험 카운트다운 타이머 (Timer Controller).

  - 로드 시 계산된 남은 시간으로 한 번만 초기화된다.
  - 단조 시계(loop.time) 기준 마감 시각에서 남은 시간을 계산하므로
    화면 렌더링, 답 선택, 저장 실패와 무관하게 실제 경과 시간만큼 줄어든다.
  - 0에 도달하면 on_expire를 정확히 한 번 호출한다.
  - stop()은 여러 번 불러도 안전하며, 멈춘 타이머는 다시 시작할 수 없다.
"""

import asyncio
import logging
import math
from typing import Awaitable, Callable, Optional

import config

logger = logging.getLogger(__name__)


def format_remaining(seconds: float) -> str:
    """남은 시간(초) → "MM:SS"."""
    remaining = max(0, int(math.ceil(seconds)))
    minutes = remaining // 60
    secs = remaining % 60
    return f"{minutes:02d}:{secs:02d}"


def is_warning(seconds: float, threshold: int = config.TIMER_WARNING_SECONDS) -> bool:
    """10분(기본) 미만이면 경고 표시."""
    return seconds < threshold


class TimerController:
    """
    세션당 하나의 카운트다운.

    Args:
        duration:  남은 시간 (초).
        on_expire: 0 도달 시 호출되는 코루틴 함수 (제출 코디네이터).
        tick:      확인 주기 (초, 기본 1초).
        clock:     단조 시계 함수 (기본 이벤트 루프 시계).
        name:      로그용 식별자 (attempt_id).
    """

    def __init__(
        self,
        duration: float,
        on_expire: Callable[[], Awaitable[None]],
        tick: float = config.TIMER_TICK_SECONDS,
        clock: Optional[Callable[[], float]] = None,
        name: str = "",
    ) -> None:
        self.duration = max(0.0, float(duration))
        self._on_expire = on_expire
        self._tick = tick
        self._clock = clock
        self._name = name

        self._deadline: Optional[float] = None
        self._frozen: Optional[float] = None
        self._task: Optional[asyncio.Task] = None
        self._started = False
        self._stopped = False
        self._fired = False

    @property
    def running(self) -> bool:
        return self._started and not self._stopped and not self._fired

    @property
    def expired(self) -> bool:
        return self._fired

    @property
    def stopped(self) -> bool:
        return self._stopped

    def start(self) -> None:
        """카운트다운 시작. 이미 시작했거나 멈춘 타이머는 다시 시작할 수 없다."""
        if self._started or self._stopped:
            raise RuntimeError("타이머는 다시 시작할 수 없습니다.")
        if self._clock is None:
            self._clock = asyncio.get_running_loop().time
        self._started = True
        self._deadline = self._clock() + self.duration
        self._task = asyncio.create_task(self._run(), name=f"timer-{self._name}")
        logger.info(f"[{self._name}] ⏱ 타이머 시작 (남은 시간: {format_remaining(self.duration)})")

    def stop(self) -> None:
        """타이머 정지. 여러 번 호출해도 안전하다."""
        if self._stopped:
            return
        self._frozen = self.remaining()
        self._stopped = True
        # 만료 콜백(제출)이 이미 돌고 있으면 그 태스크는 건드리지 않는다
        if self._task is not None and not self._fired:
            self._task.cancel()
        logger.info(f"[{self._name}] 타이머 정지 (남은 시간: {format_remaining(self._frozen)})")

    def remaining(self) -> float:
        """남은 시간 (초, 실수)."""
        if self._fired:
            return 0.0
        if self._frozen is not None:
            return self._frozen
        if self._deadline is None:
            return self.duration
        return max(0.0, self._deadline - self._clock())

    def remaining_seconds(self) -> int:
        """화면 표시용 남은 시간 (초, 올림)."""
        return int(math.ceil(self.remaining()))

    async def join(self) -> None:
        """타이머 태스크(만료 콜백 포함)가 끝날 때까지 대기."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise

    async def _run(self) -> None:
        while True:
            remaining = self.remaining()
            if remaining <= 0:
                break
            await asyncio.sleep(min(self._tick, remaining))

        self._fired = True
        logger.info(f"[{self._name}] ⏰ 시험 시간이 종료되었습니다.")
        try:
            await self._on_expire()
        except Exception:
            logger.exception(f"[{self._name}] 만료 처리 중 예외 발생")
