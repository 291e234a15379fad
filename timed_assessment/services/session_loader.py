"""
services/session_loader.py

세션 진입 시 응시 정보를 가져와 초기 상태를 만든다.

  - 이미 제출된 응시 → 타이머 없이 결과 화면으로 보낸다 (이어 보기).
  - 진행 중인 응시  → 문항 + 서버에 저장된 답으로 답안 버퍼를 채운다 (이어 풀기).
  - 남은 시간은 서버가 기록한 startedAt 기준으로 계산한다.
    새로고침해도 제한 시간이 처음부터 다시 시작되지 않는다.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from pydantic import BaseModel

from timed_assessment.errors import AttemptNotFoundError, BackendError, LoadFailure
from timed_assessment.models.attempt_model import Attempt

logger = logging.getLogger(__name__)


class LoadedSession(BaseModel):
    """로더 결과. already_submitted이면 answers/remaining_seconds는 의미 없음."""

    attempt: Attempt
    answers: Dict[int, str] = {}
    remaining_seconds: int = 0
    already_submitted: bool = False


def _as_utc(value: datetime) -> datetime:
    # 타임존 없는 값은 UTC로 간주
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def compute_remaining_seconds(attempt: Attempt, now: datetime) -> int:
    """
    남은 시간(초)을 계산한다.

    remaining = duration − (now − startedAt), [0, duration] 범위로 보정.
    시험 응시 기간(endTime)이 먼저 끝나면 그 시각까지로 줄인다.
    startedAt이 없으면 전체 시간을 돌려준다 (새로고침 시 재시작됨).
    """
    now = _as_utc(now)
    duration = attempt.duration_seconds

    if attempt.started_at is None:
        logger.warning(
            f"[{attempt.attempt_id}] startedAt 없음. 전체 시간({duration}초)으로 시작합니다. "
            "새로고침하면 카운트다운이 다시 시작됩니다."
        )
        remaining = float(duration)
    else:
        elapsed = max(0.0, (now - _as_utc(attempt.started_at)).total_seconds())
        remaining = duration - elapsed

    if attempt.end_time is not None:
        remaining = min(remaining, (_as_utc(attempt.end_time) - now).total_seconds())

    return int(min(duration, max(0, math.ceil(remaining))))


def seed_answers(attempt: Attempt) -> Dict[int, str]:
    """서버에 저장된 userAnswer로 답안 버퍼 초기값을 만든다."""
    answers: Dict[int, str] = {}
    for q in attempt.questions:
        if q.user_answer is None:
            continue
        if not q.has_option(q.user_answer):
            logger.warning(
                f"[{attempt.attempt_id}] Q{q.question_number}: 저장된 답 {q.user_answer!r}이(가) "
                f"보기 키({q.option_keys})에 없어 무시합니다."
            )
            continue
        answers[q.question_number] = q.user_answer
    return answers


def strip_correct_answers(attempt: Attempt) -> Attempt:
    """제출 전 응시에 정답이 섞여 오면 제거한다."""
    if not any(q.correct_answer is not None for q in attempt.questions):
        return attempt
    logger.warning(f"[{attempt.attempt_id}] 제출 전 응답에 정답이 포함되어 있어 제거합니다.")
    questions = [q.model_copy(update={"correct_answer": None}) for q in attempt.questions]
    return attempt.model_copy(update={"questions": questions})


async def load_session(
    backend,
    attempt_id: str,
    now: Optional[Callable[[], datetime]] = None,
) -> LoadedSession:
    """
    응시 정보를 불러와 LoadedSession을 만든다.

    Args:
        backend:    load_attempt(attempt_id)를 제공하는 백엔드 클라이언트.
        attempt_id: 응시 식별자.
        now:        현재 시각 함수 (테스트 주입용, 기본 UTC now).

    Raises:
        LoadFailure: 응시 없음(retriable=False) 또는 네트워크/백엔드 오류(retriable=True).
    """
    now = now or (lambda: datetime.now(timezone.utc))

    try:
        attempt = await backend.load_attempt(attempt_id)
    except AttemptNotFoundError as e:
        logger.error(f"[{attempt_id}] 응시 기록을 찾을 수 없습니다: {e}")
        raise LoadFailure("응시 기록을 찾을 수 없습니다.", retriable=False) from e
    except BackendError as e:
        logger.error(f"[{attempt_id}] 응시 정보 로드 실패: {e}")
        raise LoadFailure("시험 정보를 불러오지 못했습니다. 다시 시도해 주세요.") from e

    if attempt.is_submitted:
        logger.info(f"[{attempt_id}] 이미 제출된 응시. 결과 화면으로 이동합니다.")
        return LoadedSession(attempt=attempt, already_submitted=True)

    attempt = strip_correct_answers(attempt)
    answers = seed_answers(attempt)
    remaining = compute_remaining_seconds(attempt, now())
    logger.info(
        f"[{attempt_id}] 로드 완료: 문항 {len(attempt.questions)}개, "
        f"저장된 답 {len(answers)}개, 남은 시간 {remaining}초"
    )
    return LoadedSession(attempt=attempt, answers=answers, remaining_seconds=remaining)
