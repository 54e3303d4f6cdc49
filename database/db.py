from sqlalchemy import create_engine               # SQLAlchemy 엔진 생성 도구
from sqlalchemy.orm import declarative_base        # 모델의 Base 클래스
from sqlalchemy.orm import sessionmaker            # 세션 팩토리 함수

from config.settings import settings               # ✅ 환경변수 설정 파일 불러오기

# ✅ 로컬 캐시 저장소 엔진 (기본 sqlite 파일)
engine = create_engine(
    settings.CACHE_DB_URL,
    connect_args={"check_same_thread": False} if settings.CACHE_DB_URL.startswith("sqlite") else {},
)

# ✅ 세션 팩토리: DB 연결에 사용할 세션 생성기 정의
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# ✅ 모델 정의 시 상속할 Base 클래스 (Declarative 방식 사용)
Base = declarative_base()


def init_db(bind=None) -> None:
    """캐시 테이블 생성 (이미 있으면 건너뜀)"""
    import models.cache_entries  # noqa: F401  테이블 등록용

    Base.metadata.create_all(bind=bind or engine)
