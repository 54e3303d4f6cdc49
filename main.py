from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.logging_config import setup_logging
from config.settings import settings

# ✅ 미들웨어 임포트
from middlewares.error_handler import add_error_handlers

# ✅ 라우터 임포트
from routers import grades

from database.db import SessionLocal, init_db
from services.grade_controller import GradeStateController
from services.grade_data_access import HttpGradeDataAccess
from services.kv_store import SqlKeyValueStore
from services.local_cache import LocalCache


def build_default_controller() -> GradeStateController:
    """설정값 기반 기본 구성: httpx 데이터 접근 + sqlite 로컬 캐시"""
    init_db()
    store = SqlKeyValueStore(SessionLocal, scope=settings.CACHE_SCOPE)
    return GradeStateController(
        data_access=HttpGradeDataAccess(),
        cache=LocalCache(store),
    )


def create_app(controller: Optional[GradeStateController] = None) -> FastAPI:
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_TITLE,
        description=settings.APP_DESCRIPTION,
        version=settings.APP_VERSION,
    )

    # ✅ CORS 설정 (프론트엔드 연동 대비)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ✅ 전역 에러 핸들러 등록 (일관된 JSON 에러 포맷)
    add_error_handlers(app)

    # ✅ 컨트롤러는 앱당 하나 (목록/통계 상태를 소유)
    app.state.grade_controller = controller or build_default_controller()

    # ✅ /v1 프리픽스 라우터 등록
    app.include_router(grades.router, prefix="/v1")

    # ✅ 헬스체크 엔드포인트
    @app.get("/health")
    def health_check():
        return {"status": "ok", "message": "API is running"}

    return app


app = create_app()
