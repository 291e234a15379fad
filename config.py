import os

# 기본 디렉토리 설정
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# 로그 파일
LOG_FILE = os.getenv("LOG_FILE", os.path.join(BASE_DIR, "launch.log"))

# 서버 설정
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))

# 시험 백엔드 설정
BACKEND_BASE_URL = os.getenv("BACKEND_BASE_URL", "http://localhost:5000")
BACKEND_API_PREFIX = os.getenv("BACKEND_API_PREFIX", "/api/prelims-pdf-tests")
BACKEND_TOKEN = os.getenv("BACKEND_TOKEN", "")
BACKEND_TIMEOUT_SECONDS = float(os.getenv("BACKEND_TIMEOUT_SECONDS", "10"))

# 세션 엔진 설정
AUTOSAVE_INTERVAL_SECONDS = float(os.getenv("AUTOSAVE_INTERVAL_SECONDS", "30"))  # 자동 저장 주기
TIMER_TICK_SECONDS = float(os.getenv("TIMER_TICK_SECONDS", "1"))                 # 카운트다운 틱
TIMER_WARNING_SECONDS = int(os.getenv("TIMER_WARNING_SECONDS", "600"))           # 10분 미만이면 경고

# 세션 레지스트리 설정
SESSION_TTL = int(os.getenv("SESSION_TTL", "3600"))                      # 1시간
SESSION_CLEANUP_INTERVAL = int(os.getenv("SESSION_CLEANUP_INTERVAL", "300"))  # 5분마다 정리
