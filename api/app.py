"""
api/app.py — FastAPI 앱 인스턴스 + 세션 레지스트리 수명 관리
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from api.routes import router
from api.session import SessionRegistry
from timed_assessment.services.assessment_session import AssessmentSession
from timed_assessment.services.backend_client import BackendClient

logger = logging.getLogger(__name__)


async def _cleanup_loop(registry: SessionRegistry, interval: float) -> None:
    # 만료 세션 주기적 정리 (기본 5분마다)
    while True:
        await asyncio.sleep(interval)
        try:
            removed = await registry.cleanup_expired()
        except Exception:
            logger.exception("만료 세션 정리 중 오류")
            continue
        if removed:
            logger.info(f"만료 세션 {removed}개 정리")


def create_app(backend=None, registry: Optional[SessionRegistry] = None) -> FastAPI:
    """
    Args:
        backend:  BackendClient 대체 객체 (테스트 주입용). None이면 config로 생성.
        registry: SessionRegistry 대체 객체. None이면 backend로 생성.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_backend = backend is None
        client = backend if backend is not None else BackendClient()
        reg = registry if registry is not None else SessionRegistry(
            lambda attempt_id: AssessmentSession(attempt_id, client)
        )
        app.state.backend = client
        app.state.registry = reg

        cleanup = asyncio.create_task(_cleanup_loop(reg, config.SESSION_CLEANUP_INTERVAL))
        logger.info("시험 세션 서버 시작")
        try:
            yield
        finally:
            cleanup.cancel()
            # 진행 중인 만료 제출까지 끝난 뒤 백엔드 연결을 닫는다
            await reg.close_all()
            if owns_backend:
                await client.aclose()
            logger.info("시험 세션 서버 종료")

    app = FastAPI(title="Timed Assessment", docs_url=None, redoc_url=None, lifespan=lifespan)

    # CORS (모바일 브라우저 등 다양한 출처 허용)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app
