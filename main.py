"""
main.py — 시험 세션 서버 진입점

    HOST=0.0.0.0 PORT=8000 python main.py
"""

import logging
import sys

import uvicorn

from config import DEFAULT_HOST, DEFAULT_PORT, LOG_FILE

# ── 로깅 설정 ────────────────────────────────────────────────────────────────
try:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )
except PermissionError:
    # 로그 파일 점유 시 콘솔 출력만 사용
    logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)


def main() -> None:
    from api.app import create_app

    logger.info(f"=== Timed Assessment Server: http://{DEFAULT_HOST}:{DEFAULT_PORT} ===")
    uvicorn.run(create_app(), host=DEFAULT_HOST, port=DEFAULT_PORT, log_level="warning")


if __name__ == "__main__":
    main()
