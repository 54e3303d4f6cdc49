"""
config/settings.py

- .env에 정의한 환경변수를 읽어 성적 모듈 전역 설정으로 제공합니다.
- pydantic v2 / pydantic-settings v2 사용.
- 모든 값에 기본값이 있으므로 .env 없이도 import 가능 (테스트/로컬 실행).
"""

from typing import List, Literal
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # =========================
    # 앱/런타임
    # =========================
    ENV: Literal["dev", "stage", "prod"] = "dev"
    APP_TITLE: str = "Student Grade API"
    APP_DESCRIPTION: str = "학생 성적 계산·집계·캐시 모듈"
    APP_VERSION: str = "1.0.0"

    # =========================
    # CORS
    # =========================
    # 콤마(,)로 구분된 문자열 → List[str] 로 파싱
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _split_origins(cls, v):
        if isinstance(v, str):
            # "a,b , c" → ["a","b","c"]
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    # =========================
    # 성적 API (원격 학사 서버)
    # =========================
    GRADES_API_BASE_URL: str = "http://localhost:5000/api"
    GRADES_API_TOKEN: str = ""
    API_TIMEOUT: float = 15.0  # 초 단위, 타임아웃은 데이터 접근 계층 책임

    # =========================
    # 로컬 캐시
    # =========================
    CACHE_DB_URL: str = "sqlite:///./grade_cache.db"
    CACHE_SCOPE: str = "grades"
    CACHE_MAX_AGE_MS: int = 3_600_000  # 1시간

    @field_validator("CACHE_MAX_AGE_MS")
    @classmethod
    def _positive_max_age(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("CACHE_MAX_AGE_MS must be positive")
        return v

    # =========================
    # Logging
    # =========================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # =========================
    # BaseSettings Config
    # =========================
    model_config = SettingsConfigDict(
        env_file=".env",               # .env에서 값 로드
        env_file_encoding="utf-8",
        case_sensitive=False,          # 환경변수 대소문자 비구분
        extra="ignore",                # 정의되지 않은 키는 무시
    )


# ✅ settings 객체를 통해 어디서든 접근 가능
settings = Settings()
