"""
api/routes.py — FastAPI 엔드포인트

브라우저 화면이 호출하는 시험 세션 API. 세션 엔진은 attemptId별로 레지스트리에 있다.
"""

from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from api.session import SessionRegistry
from timed_assessment.errors import AnswerLockedError, AttemptNotFoundError, BackendError
from timed_assessment.models.question_model import Question
from timed_assessment.models.session_state import SessionPhase
from timed_assessment.services.assessment_session import AssessmentSession
from timed_assessment.services.timer import format_remaining, is_warning

router = APIRouter()

# ── Pydantic request bodies ──────────────────────────────────────────────────

class AnswerBody(BaseModel):
    option_key: str = ""

class NavigateBody(BaseModel):
    index: Optional[int] = None
    direction: Optional[Literal["prev", "next"]] = None

class SubmitBody(BaseModel):
    confirmed: bool = False


# ── 헬퍼 ─────────────────────────────────────────────────────────────────────

def _registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def _require_session(request: Request, attempt_id: str) -> AssessmentSession:
    session = _registry(request).get(attempt_id)
    if session is None:
        raise HTTPException(status_code=404, detail="시험 세션이 없습니다.")
    return session


def _question_to_dict(q: Question) -> dict:
    # 정답(correct_answer)은 절대 내보내지 않는다
    return {
        "question_number": q.question_number,
        "question_text": q.question_text.model_dump(),
        "options": [{"key": o.key, "english": o.english, "hindi": o.hindi} for o in q.options],
    }


def _session_view(session: AssessmentSession) -> dict:
    state = session.state
    nav = session.navigation
    remaining = session.remaining_seconds()
    return {
        "attempt_id": session.attempt_id,
        "title": state.attempt.title if state.attempt else "",
        "phase": state.phase.value,
        "remaining_seconds": remaining,
        "remaining_display": format_remaining(remaining),
        "is_warning": state.phase == SessionPhase.IN_PROGRESS and is_warning(remaining),
        "current_index": nav.index,
        "total": state.total,
        "answered_count": nav.attempted_count,
        "unanswered_count": nav.unanswered_count,
        "statuses": [s.model_dump() for s in nav.statuses()],
        "submit_reason": state.submit_reason.value if state.submit_reason else None,
        "result": state.result.model_dump() if state.result else None,
        "error": state.error.model_dump(mode="json") if state.error else None,
        "redirect": session.result_url,
    }


def _require_in_progress(session: AssessmentSession) -> None:
    if session.phase != SessionPhase.IN_PROGRESS:
        raise HTTPException(status_code=409, detail="진행 중인 시험이 아닙니다.")


# ── 엔드포인트 ───────────────────────────────────────────────────────────────

@router.post("/api/tests/{test_id}/start")
async def start_test(test_id: str, request: Request):
    try:
        attempt_id = await request.app.state.backend.start_attempt(test_id)
    except AttemptNotFoundError:
        raise HTTPException(status_code=404, detail="시험을 찾을 수 없습니다.")
    except BackendError as e:
        raise HTTPException(status_code=502, detail=f"시험을 시작하지 못했습니다: {e.message}")
    return {"attemptId": attempt_id, "ok": True}


@router.post("/api/attempts/{attempt_id}/open")
async def open_attempt(attempt_id: str, request: Request):
    session = await _registry(request).open(attempt_id)
    return _session_view(session)


@router.get("/api/attempts/{attempt_id}/state")
async def get_state(attempt_id: str, request: Request):
    return _session_view(_require_session(request, attempt_id))


@router.get("/api/attempts/{attempt_id}/question")
async def get_question(attempt_id: str, request: Request):
    session = _require_session(request, attempt_id)
    q = session.navigation.current_question
    if q is None:
        raise HTTPException(status_code=404, detail="문제를 찾을 수 없습니다.")

    d = _question_to_dict(q)
    d.update({
        "saved_answer": session.navigation.saved_answer(),
        "index": session.navigation.index,
        "total": session.state.total,
    })
    return d


@router.post("/api/attempts/{attempt_id}/answer")
async def save_answer(attempt_id: str, body: AnswerBody, request: Request):
    session = _require_session(request, attempt_id)
    try:
        if body.option_key:
            session.select_answer(body.option_key)
        else:
            session.clear_answer()
    except AnswerLockedError:
        raise HTTPException(status_code=409, detail="이미 제출 중이거나 제출된 시험입니다.")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"ok": True, "answered_count": session.navigation.attempted_count}


@router.post("/api/attempts/{attempt_id}/navigate")
async def navigate(attempt_id: str, body: NavigateBody, request: Request):
    session = _require_session(request, attempt_id)
    _require_in_progress(session)

    nav = session.navigation
    if body.direction == "prev":
        idx = nav.previous()
    elif body.direction == "next":
        idx = nav.next()
    elif body.index is not None:
        idx = nav.jump(body.index)
    else:
        raise HTTPException(status_code=400, detail="index 또는 direction이 필요합니다.")
    return {"index": idx, "ok": True}


@router.post("/api/attempts/{attempt_id}/submit")
async def submit_exam(attempt_id: str, body: SubmitBody, request: Request):
    session = _require_session(request, attempt_id)
    outcome = await session.submit(confirmed=body.confirmed)
    if outcome.confirmation is not None:
        return {"confirmation_required": True, **outcome.confirmation.model_dump()}

    view = _session_view(session)
    view["submitted"] = outcome.submitted
    return view


@router.post("/api/attempts/{attempt_id}/close")
async def close_attempt(attempt_id: str, request: Request):
    removed = await _registry(request).discard(attempt_id)
    return {"ok": True, "removed": removed}


@router.get("/api/attempts/{attempt_id}/result")
@router.get("/result/{attempt_id}")
async def get_result(attempt_id: str, request: Request):
    try:
        graded = await request.app.state.backend.get_result(attempt_id)
    except AttemptNotFoundError:
        raise HTTPException(status_code=404, detail="결과 정보가 없습니다.")
    except BackendError as e:
        raise HTTPException(status_code=502, detail=f"결과를 불러오지 못했습니다: {e.message}")
    return graded.model_dump(mode="json")
