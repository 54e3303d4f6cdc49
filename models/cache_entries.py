from sqlalchemy import BigInteger, Column, String, Text
from database.db import Base


class KeyValueEntry(Base):
    __tablename__ = "kv_entries"  # 로컬 캐시 key-value 테이블

    scope = Column(String(64), primary_key=True)     # 저장소 범위 (예: grades)
    key = Column(String(255), primary_key=True)      # 캐시 키
    value = Column(Text, nullable=False)             # 직렬화된 blob (스키마 강제 없음)
    updated_at = Column(BigInteger, nullable=False)  # 마지막 기록 시각 (epoch ms)
