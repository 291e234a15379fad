"""
services/backend_client.py

시험 백엔드 REST API 비동기 클라이언트 (httpx).

Public API:
  - start_attempt(test_id) -> str                    : 응시 시작, attemptId 반환
  - load_attempt(attempt_id) -> Attempt              : 응시 정보 (정답 미포함)
  - save_answers(attempt_id, answers) -> None        : 답안 저장 (멱등)
  - submit(attempt_id) -> SubmitResult               : 최종 제출
  - get_result(attempt_id) -> GradedAttempt          : 채점 결과

모든 응답은 {"success": bool, "data": ..., "message": str} 형태이다.
네트워크/HTTP/파싱 오류는 전부 BackendError 계열로 변환한다.
자동 재시도는 하지 않는다 (재시도 정책은 호출 측 책임).
"""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

import config
from timed_assessment.errors import (
    AlreadySubmittedError,
    AttemptNotFoundError,
    BackendError,
    BackendUnavailableError,
)
from timed_assessment.models.attempt_model import Attempt, GradedAttempt, SubmitResult

logger = logging.getLogger(__name__)

_ALREADY_SUBMITTED_MARKERS = ("already submitted",)


class BackendClient:
    """
    시험 백엔드 호출 래퍼.

    하나의 httpx.AsyncClient를 공유하며, 앱 종료 시 aclose()로 정리한다.
    테스트에서는 transport 인자로 httpx.MockTransport를 주입한다.
    """

    def __init__(
        self,
        base_url: str = config.BACKEND_BASE_URL,
        api_prefix: str = config.BACKEND_API_PREFIX,
        token: str = config.BACKEND_TOKEN,
        timeout: float = config.BACKEND_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.api_prefix = "/" + api_prefix.strip("/") if api_prefix.strip("/") else ""
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── 공개 API ────────────────────────────────────────────────────────────

    async def start_attempt(self, test_id: str) -> str:
        data = await self._request("POST", f"/{test_id}/start")
        try:
            return str(data["attemptId"])
        except (KeyError, TypeError):
            raise BackendError("start 응답에 attemptId가 없습니다.")

    async def load_attempt(self, attempt_id: str) -> Attempt:
        """
        응시 정보를 가져온다.

        Raises:
            AttemptNotFoundError: 응시 기록 없음 (404)
            BackendUnavailableError: 네트워크 오류
            BackendError: 기타 실패 / 응답 형식 오류
        """
        data = await self._request("GET", f"/attempt/{attempt_id}")
        return self._parse(Attempt, data, "attempt")

    async def save_answers(self, attempt_id: str, answers: Dict[int, str]) -> None:
        """
        답안 버퍼 전체를 저장한다. 같은 매핑을 두 번 보내도 결과는 같다.
        JSON 객체 키는 문자열이어야 하므로 question_number를 str로 변환.
        """
        payload = {"answers": {str(k): v for k, v in answers.items()}}
        await self._request("PATCH", f"/attempt/{attempt_id}/answers", json=payload)

    async def submit(self, attempt_id: str) -> SubmitResult:
        data = await self._request("POST", f"/attempt/{attempt_id}/submit")
        return self._parse(SubmitResult, data or {}, "submit")

    async def get_result(self, attempt_id: str) -> GradedAttempt:
        data = await self._request("GET", f"/attempt/{attempt_id}/result")
        return self._parse(GradedAttempt, data, "result")

    # ── 내부 헬퍼 ───────────────────────────────────────────────────────────

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> Any:
        url = f"{self.api_prefix}{path}"
        try:
            response = await self._client.request(method, url, json=json)
        except httpx.TimeoutException as e:
            raise BackendUnavailableError(f"백엔드 응답 시간 초과: {method} {url}") from e
        except httpx.HTTPError as e:
            raise BackendUnavailableError(f"백엔드 연결 실패: {type(e).__name__}: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        message = ""
        if isinstance(body, dict):
            message = str(body.get("message") or "")

        if response.is_success and isinstance(body, dict) and body.get("success", True):
            return body.get("data")

        status_code = response.status_code
        message = message or f"HTTP {status_code}"
        logger.debug(f"백엔드 실패 응답: {method} {url} → {status_code} {message}")

        if status_code == 404:
            raise AttemptNotFoundError(message, status_code)
        if status_code == 409 or any(m in message.lower() for m in _ALREADY_SUBMITTED_MARKERS):
            raise AlreadySubmittedError(message, status_code)
        raise BackendError(message, status_code)

    @staticmethod
    def _parse(model, data: Any, what: str):
        if not isinstance(data, dict):
            raise BackendError(f"{what} 응답 형식이 올바르지 않습니다.")
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise BackendError(f"{what} 응답 검증 실패: {e.error_count()}개 오류") from e
