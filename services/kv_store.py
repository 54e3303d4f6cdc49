import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple

from sqlalchemy.orm import Session, sessionmaker

from models.cache_entries import KeyValueEntry


class KeyValueStore(ABC):
    """범위(scope)가 있는 문자열 key → 문자열 blob 저장소"""

    def __init__(self, scope: str):
        self.scope = scope

    @abstractmethod
    def get(self, key: str) -> Optional[str]: ...
    @abstractmethod
    def set(self, key: str, value: str) -> None: ...
    @abstractmethod
    def remove(self, key: str) -> None: ...


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, scope: str = "grades"):
        super().__init__(scope)
        self._data: Dict[Tuple[str, str], str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get((self.scope, key))

    def set(self, key: str, value: str) -> None:
        self._data[(self.scope, key)] = value

    def remove(self, key: str) -> None:
        self._data.pop((self.scope, key), None)


class SqlKeyValueStore(KeyValueStore):
    """SQLAlchemy 테이블(kv_entries)에 저장하는 영속 저장소"""

    def __init__(self, session_factory: sessionmaker, scope: str = "grades",
                 clock: Callable[[], float] = time.time):
        super().__init__(scope)
        self.session_factory = session_factory
        self.clock = clock

    def get(self, key: str) -> Optional[str]:
        db: Session = self.session_factory()
        try:
            entry = db.get(KeyValueEntry, (self.scope, key))
            return entry.value if entry is not None else None
        finally:
            db.close()

    def set(self, key: str, value: str) -> None:
        db: Session = self.session_factory()
        try:
            # merge = 있으면 교체, 없으면 추가 (항상 통째로 덮어씀)
            db.merge(KeyValueEntry(
                scope=self.scope,
                key=key,
                value=value,
                updated_at=int(self.clock() * 1000),
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def remove(self, key: str) -> None:
        db: Session = self.session_factory()
        try:
            db.query(KeyValueEntry).filter(
                KeyValueEntry.scope == self.scope,
                KeyValueEntry.key == key,
            ).delete()
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
