"""
services/navigation.py

문제 이동 및 답 선택 (Navigation Controller).

답안 버퍼에 쓰는 유일한 컴포넌트이다.
이동과 답 선택은 서로 독립적이다: 답을 골라도 다음 문제로 넘어가지 않는다.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel

from timed_assessment.errors import AnswerLockedError
from timed_assessment.models.question_model import Question
from timed_assessment.models.session_state import SessionPhase, SessionState

logger = logging.getLogger(__name__)


class QuestionStatus(BaseModel):
    """문제 번호 네비게이터 한 칸."""

    index: int
    question_number: int
    answered: bool
    current: bool


class NavigationController:
    def __init__(self, state: SessionState) -> None:
        self._state = state

    # ── 조회 ─────────────────────────────────────────────────────────────

    @property
    def index(self) -> int:
        return self._state.current_quest_index

    @property
    def current_question(self) -> Optional[Question]:
        questions = self._state.questions
        if not questions:
            return None
        return questions[self.index]

    @property
    def attempted_count(self) -> int:
        return len(self._state.user_answers)

    @property
    def unanswered_count(self) -> int:
        return self._state.total - self.attempted_count

    def saved_answer(self) -> Optional[str]:
        q = self.current_question
        return self._state.user_answers.get(q.question_number) if q else None

    def statuses(self) -> List[QuestionStatus]:
        """
        네비게이터용 문항별 상태.

        색상 코딩(프론트엔드):
          - 현재 문제: current
          - 답한 문제: answered
          - 미답 문제: 둘 다 False
        """
        answers = self._state.user_answers
        return [
            QuestionStatus(
                index=i,
                question_number=q.question_number,
                answered=q.question_number in answers,
                current=i == self.index,
            )
            for i, q in enumerate(self._state.questions)
        ]

    # ── 이동 ─────────────────────────────────────────────────────────────

    def previous(self) -> int:
        """이전 문제. 첫 문제에서는 아무 일도 하지 않는다."""
        if self.index > 0:
            self._state.current_quest_index -= 1
        return self.index

    def next(self) -> int:
        """다음 문제. 마지막 문제에서는 아무 일도 하지 않는다 (순환 없음)."""
        if self.index < self._state.total - 1:
            self._state.current_quest_index += 1
        return self.index

    def jump(self, index: int) -> int:
        """임의 인덱스로 이동. 범위를 벗어나면 양 끝으로 보정."""
        total = self._state.total
        if total == 0:
            return 0
        self._state.current_quest_index = max(0, min(index, total - 1))
        return self.index

    # ── 답 선택 ──────────────────────────────────────────────────────────

    def select(self, option_key: str) -> None:
        """
        현재 문제의 답을 고른다. 로컬 버퍼만 바꾸며 네트워크 호출은 없다.

        Raises:
            AnswerLockedError: 진행 중이 아닌 세션.
            ValueError:        현재 문제에 없는 보기 키.
        """
        q = self._writable_question()
        if not q.has_option(option_key):
            raise ValueError(f"Q{q.question_number}: 보기 키 {option_key!r}이(가) 없습니다 ({q.option_keys}).")
        self._state.user_answers[q.question_number] = option_key

    def clear(self) -> None:
        """현재 문제의 답을 지운다 (미응답 = 키 없음)."""
        q = self._writable_question()
        self._state.user_answers.pop(q.question_number, None)

    def _writable_question(self) -> Question:
        if self._state.phase != SessionPhase.IN_PROGRESS:
            raise AnswerLockedError(
                f"[{self._state.attempt_id}] {self._state.phase.value} 상태에서는 답을 바꿀 수 없습니다."
            )
        q = self.current_question
        if q is None:
            raise AnswerLockedError(f"[{self._state.attempt_id}] 표시할 문제가 없습니다.")
        return q
