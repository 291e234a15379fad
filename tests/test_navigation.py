"""
Unit Tests for Navigation Controller
Tests for: 이전/다음/점프, 답 선택과 이동의 독립성, 잠금
"""

import pytest

from conftest import make_attempt_payload
from timed_assessment.errors import AnswerLockedError
from timed_assessment.models.attempt_model import Attempt
from timed_assessment.models.session_state import SessionPhase, SessionState
from timed_assessment.services.navigation import NavigationController


@pytest.fixture
def state():
    s = SessionState(attempt_id="att-1", attempt=Attempt.model_validate(make_attempt_payload()))
    s.transition(SessionPhase.IN_PROGRESS)
    return s


@pytest.fixture
def nav(state):
    return NavigationController(state)


class TestMovement:
    def test_previous_at_first_is_noop(self, nav):
        assert nav.previous() == 0

    def test_next_at_last_does_not_wrap(self, nav):
        nav.jump(4)
        assert nav.next() == 4

    def test_next_and_previous(self, nav):
        assert nav.next() == 1
        assert nav.next() == 2
        assert nav.previous() == 1

    def test_jump_clamps(self, nav):
        assert nav.jump(99) == 4
        assert nav.jump(-3) == 0

    def test_current_question_follows_index(self, nav):
        nav.jump(2)
        assert nav.current_question.question_number == 3


class TestAnswers:
    def test_select_does_not_advance(self, nav, state):
        nav.select("C")
        assert nav.index == 0
        assert state.user_answers == {1: "C"}

    def test_reselect_overwrites(self, nav, state):
        nav.select("A")
        nav.select("D")
        assert state.user_answers == {1: "D"}
        assert nav.saved_answer() == "D"

    def test_clear_removes_key(self, nav, state):
        nav.select("A")
        nav.clear()
        assert 1 not in state.user_answers
        assert nav.saved_answer() is None

    def test_unknown_option_rejected(self, nav, state):
        with pytest.raises(ValueError):
            nav.select("E")
        assert state.user_answers == {}

    def test_counts_and_statuses(self, nav):
        nav.select("A")
        nav.jump(2)
        nav.select("B")

        assert nav.attempted_count == 2
        assert nav.unanswered_count == 3
        statuses = nav.statuses()
        assert [s.answered for s in statuses] == [True, False, True, False, False]
        assert [s.current for s in statuses] == [False, False, True, False, False]

    def test_locked_outside_in_progress(self, nav, state):
        nav.select("A")
        state.transition(SessionPhase.SUBMITTING)

        with pytest.raises(AnswerLockedError):
            nav.select("B")
        with pytest.raises(AnswerLockedError):
            nav.clear()
        assert state.user_answers == {1: "A"}
        # 읽기 전용 이동은 여전히 가능
        assert nav.next() == 1
