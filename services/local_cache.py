"""
services/local_cache.py

- 집계 결과를 key 단위로 저장해 같은 조회의 네트워크 왕복을 줄인다.
- 만료는 읽을 때 판단 (백그라운드 정리/용량 제한 없음). 엔트리는 적고 조회 단위(학생 id)별 1개.
- 캐시 실패는 절대 호출자에게 전파하지 않는다: 쓰기 실패는 무시, 읽기 실패는 miss.
"""

import logging
import time
from typing import Any, Callable, Optional

from pydantic import ValidationError

from config.settings import settings
from schemas.grades import CacheEntry
from services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class LocalCache:
    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], int] = _now_ms,
        default_max_age_ms: Optional[int] = None,
    ):
        self.store = store
        self.clock = clock
        self.default_max_age_ms = default_max_age_ms or settings.CACHE_MAX_AGE_MS

    def put(self, key: str, payload: Any) -> None:
        try:
            entry = CacheEntry(key=key, payload=payload, written_at=self.clock())
            self.store.set(key, entry.model_dump_json())
        except Exception as e:
            # 캐시 쓰기 실패가 본 작업을 막으면 안 됨
            logger.warning(f"캐시 저장 실패 key={key}: {e}")

    def get(self, key: str, max_age_ms: Optional[int] = None) -> Optional[Any]:
        max_age = self.default_max_age_ms if max_age_ms is None else max_age_ms
        try:
            blob = self.store.get(key)
        except Exception as e:
            logger.warning(f"캐시 읽기 실패 key={key}: {e}")
            return None
        if blob is None:
            return None

        try:
            entry = CacheEntry.model_validate_json(blob)
        except ValidationError:
            logger.debug(f"캐시 역직렬화 실패, miss 처리 key={key}")
            return None

        if self.clock() - entry.written_at >= max_age:
            logger.debug(f"캐시 만료 key={key}")
            return None
        return entry.payload

    def invalidate(self, key: str) -> None:
        try:
            self.store.remove(key)
        except Exception as e:
            logger.warning(f"캐시 삭제 실패 key={key}: {e}")
