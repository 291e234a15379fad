"""
Unit Tests for domain models
Tests for: Question/Option 검증, Attempt 정규화, SessionState 상태 기계
"""

import pytest
from pydantic import ValidationError

from conftest import make_attempt_payload, make_question
from timed_assessment.errors import InvalidTransitionError
from timed_assessment.models.attempt_model import Attempt, GradedAttempt, SubmitResult
from timed_assessment.models.question_model import Question
from timed_assessment.models.session_state import (
    ErrorKind,
    SessionPhase,
    SessionState,
)


class TestQuestion:
    def test_parses_camel_case_payload(self):
        q = Question.model_validate(make_question(3, user_answer="B"))
        assert q.question_number == 3
        assert q.option_keys == ["A", "B", "C", "D"]
        assert q.options[0].english == "Option A"
        assert q.options[0].hindi == "विकल्प A"
        assert q.question_text.english == "Question 3"
        assert q.question_text.hindi == "प्रश्न 3"
        assert q.user_answer == "B"

    def test_plain_string_question_text_is_english(self):
        data = make_question(1)
        data["questionText"] = "Single language"
        data["options"] = [{"key": "A", "text": "yes"}, {"key": "B", "text": "no"}]
        q = Question.model_validate(data)
        assert q.question_text.english == "Single language"
        assert q.question_text.hindi == ""
        assert q.options[1].english == "no"

    def test_missing_question_text_defaults_empty(self):
        data = make_question(1)
        del data["questionText"]
        assert Question.model_validate(data).question_text.english == ""

    def test_empty_user_answer_is_none(self):
        q = Question.model_validate(make_question(1, user_answer=""))
        assert q.user_answer is None

    def test_requires_two_options(self):
        data = make_question(1)
        data["options"] = data["options"][:1]
        with pytest.raises(ValidationError):
            Question.model_validate(data)

    def test_duplicate_option_keys_rejected(self):
        data = make_question(1)
        data["options"][1]["key"] = "A"
        with pytest.raises(ValidationError):
            Question.model_validate(data)

    def test_correct_answer_must_be_option(self):
        with pytest.raises(ValidationError):
            Question.model_validate(make_question(1, correct="Z"))

    def test_question_number_is_one_based(self):
        with pytest.raises(ValidationError):
            Question.model_validate(make_question(0))


class TestAttempt:
    def test_duration_minutes_converted_to_seconds(self):
        attempt = Attempt.model_validate(make_attempt_payload(duration_minutes=30))
        assert attempt.duration_seconds == 1800
        assert attempt.attempt_id == "att-1"
        assert attempt.total_questions == 5
        assert attempt.question_numbers == [1, 2, 3, 4, 5]

    def test_numeric_id_coerced_to_str(self):
        payload = make_attempt_payload()
        payload["_id"] = 42
        assert Attempt.model_validate(payload).attempt_id == "42"

    def test_duplicate_question_numbers_rejected(self):
        payload = make_attempt_payload(questions=2)
        payload["questions"][1]["questionNumber"] = 1
        with pytest.raises(ValidationError):
            Attempt.model_validate(payload)

    def test_attempt_is_immutable(self):
        attempt = Attempt.model_validate(make_attempt_payload())
        with pytest.raises(ValidationError):
            attempt.duration_seconds = 10

    def test_submit_result_and_graded_attempt_aliases(self):
        r = SubmitResult.model_validate({"score": 8, "correctCount": 4, "wrongCount": 1})
        assert (r.score, r.correct_count, r.wrong_count) == (8, 4, 1)

        graded = GradedAttempt.model_validate(
            {**make_attempt_payload(submitted=True), "score": 8, "correctCount": 4, "rank": 3}
        )
        assert graded.attempt_id == "att-1"
        assert graded.correct_count == 4
        # 해석하지 않는 필드도 그대로 전달
        assert graded.model_dump()["rank"] == 3


class TestSessionState:
    def test_happy_path_transitions(self):
        state = SessionState(attempt_id="a")
        state.transition(SessionPhase.IN_PROGRESS)
        state.transition(SessionPhase.SUBMITTING)
        state.transition(SessionPhase.SUBMITTED)
        assert state.phase_history == [
            SessionPhase.LOADING,
            SessionPhase.IN_PROGRESS,
            SessionPhase.SUBMITTING,
            SessionPhase.SUBMITTED,
        ]
        assert state.is_terminal

    def test_submitted_is_absorbing(self):
        state = SessionState(attempt_id="a")
        state.transition(SessionPhase.SUBMITTED)
        for target in SessionPhase:
            assert not state.can_transition(target)
        with pytest.raises(InvalidTransitionError):
            state.transition(SessionPhase.SUBMITTING)

    def test_in_progress_cannot_skip_to_submitted(self):
        state = SessionState(attempt_id="a")
        state.transition(SessionPhase.IN_PROGRESS)
        with pytest.raises(InvalidTransitionError):
            state.transition(SessionPhase.SUBMITTED)

    def test_error_retry_only_same_kind(self):
        state = SessionState(attempt_id="a")
        state.fail(ErrorKind.LOAD, "network")
        assert state.can_transition(SessionPhase.LOADING)
        assert not state.can_transition(SessionPhase.SUBMITTING)

        state.transition(SessionPhase.LOADING)
        assert state.error is None

    def test_non_retriable_error_is_terminal(self):
        state = SessionState(attempt_id="a")
        state.fail(ErrorKind.LOAD, "not found", retriable=False)
        assert state.is_terminal
        assert not state.can_transition(SessionPhase.LOADING)

    def test_answers_snapshot_is_copy(self):
        state = SessionState(attempt_id="a", user_answers={1: "A"})
        snap = state.answers_snapshot()
        state.user_answers[2] = "B"
        assert snap == {1: "A"}
