"""
api/session.py — 응시별 인메모리 세션 레지스트리

각 attemptId마다 독립된 AssessmentSession을 유지한다 (탭/사용자 간 상태 공유 없음).
TTL(기본 1시간) 동안 접근이 없으면 만료되어 정리된다.
모든 접근은 이벤트 루프 한 스레드에서 일어나므로 잠금이 필요 없다.
"""

import logging
import time
from typing import Callable, Dict, Optional

import config
from timed_assessment.models.session_state import SessionPhase
from timed_assessment.services.assessment_session import AssessmentSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(
        self,
        factory: Callable[[str], AssessmentSession],
        ttl: int = config.SESSION_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._factory = factory
        self.ttl = ttl
        self._clock = clock
        self._sessions: Dict[str, AssessmentSession] = {}
        self._timestamps: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, attempt_id: str) -> bool:
        return attempt_id in self._sessions

    async def open(self, attempt_id: str) -> AssessmentSession:
        """
        세션을 열거나 이어서 사용한다.

        살아 있는 세션이 있으면 그대로 돌려준다 (로컬 답안 버퍼가 서버보다 최신).
        없거나 종료/재시도 불가 오류 상태면 새로 만들고 로더를 실행한다.
        재시도 가능한 로드 오류 상태면 같은 세션에서 다시 로드한다.
        """
        session = self.get(attempt_id)
        stale = session is None or session.closed or (
            session.phase == SessionPhase.ERROR and session.state.is_terminal
        )
        if stale and attempt_id in self._sessions:
            await self.discard(attempt_id)
        if stale:
            session = None

        if session is None:
            session = self._factory(attempt_id)
            self._sessions[attempt_id] = session
            logger.info(f"[{attempt_id}] 새 세션 생성 (활성 세션 {len(self._sessions)}개)")

        self._timestamps[attempt_id] = self._clock()
        await session.open()
        return session

    def get(self, attempt_id: str) -> Optional[AssessmentSession]:
        """세션을 가져옴. 만료되었거나 없으면 None. 접근 시 TTL 갱신."""
        if attempt_id not in self._sessions:
            return None
        if self._clock() - self._timestamps[attempt_id] > self.ttl:
            return None
        self._timestamps[attempt_id] = self._clock()
        return self._sessions[attempt_id]

    async def discard(self, attempt_id: str) -> bool:
        """세션을 닫고 제거. 제거했으면 True."""
        session = self._sessions.pop(attempt_id, None)
        self._timestamps.pop(attempt_id, None)
        if session is None:
            return False
        await session.close()
        return True

    async def cleanup_expired(self) -> int:
        """만료된 세션을 정리. 제거된 수 반환."""
        now = self._clock()
        expired = [aid for aid, ts in self._timestamps.items() if now - ts > self.ttl]
        for aid in expired:
            await self.discard(aid)
        return len(expired)

    async def close_all(self) -> None:
        for aid in list(self._sessions):
            await self.discard(aid)
