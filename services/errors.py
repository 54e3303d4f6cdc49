from typing import Any, Optional


class GradeServiceError(Exception):
    """성적 모듈 공통 예외"""

    def __init__(self, message: str, payload: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload


class TransportFailure(GradeServiceError):
    """데이터 접근 호출 자체가 실패 (연결 오류, 타임아웃, HTTP 오류)"""


class SemanticFailure(GradeServiceError):
    """전송은 성공했지만 응답의 success 가 false"""
