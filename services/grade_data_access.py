import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from config.settings import settings
from schemas.grades import GradeFilterParams
from services.errors import TransportFailure

logger = logging.getLogger(__name__)

RawResponse = Any

API_PATH = "/grades"


class GradeDataAccess(ABC):
    """성적 원격 조회/변경 협력 객체. 응답은 가공하지 않은 원본 payload 그대로 반환"""

    @abstractmethod
    async def fetch_grades(self, filters: Optional[GradeFilterParams] = None) -> RawResponse: ...
    @abstractmethod
    async def create_grade(self, payload: Dict[str, Any]) -> RawResponse: ...
    @abstractmethod
    async def patch_grade(self, grade_id: str, payload: Dict[str, Any]) -> RawResponse: ...
    @abstractmethod
    async def delete_grade(self, grade_id: str) -> RawResponse: ...
    @abstractmethod
    async def patch_grade_status(self, grade_id: str, status: str) -> RawResponse: ...
    @abstractmethod
    async def fetch_student_grades(self, student_id: str) -> RawResponse: ...
    @abstractmethod
    async def fetch_transcript(self) -> RawResponse: ...
    @abstractmethod
    async def fetch_course_grades(self, course_id: str) -> RawResponse: ...
    @abstractmethod
    async def fetch_current_semester_grades(self) -> RawResponse: ...
    @abstractmethod
    async def fetch_gpa_stats(self) -> RawResponse: ...
    @abstractmethod
    async def fetch_semesters(self) -> RawResponse: ...


class HttpGradeDataAccess(GradeDataAccess):
    """httpx 비동기 클라이언트 구현. 타임아웃은 여기서 책임진다"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.GRADES_API_BASE_URL).rstrip("/")
        token = settings.GRADES_API_TOKEN if token is None else token
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if token:
            self.headers["Authorization"] = f"Bearer {token}"
        self.timeout = timeout or settings.API_TIMEOUT
        self._client = client

    async def _request(self, method: str, path: str, **kwargs) -> RawResponse:
        """공통 HTTP 요청 처리"""
        url = f"{self.base_url}{path}"
        try:
            if self._client is not None:
                response = await self._client.request(method, url, headers=self.headers, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, headers=self.headers, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException:
            raise TransportFailure("Hết thời gian chờ phản hồi từ máy chủ")
        except httpx.HTTPStatusError as e:
            body = _safe_json(e.response)
            message = (body or {}).get("message") or f"HTTP {e.response.status_code}"
            logger.warning(f"성적 API 오류 {method} {path}: {message}")
            raise TransportFailure(message, payload=body)
        except httpx.HTTPError as e:
            raise TransportFailure(f"Đã xảy ra lỗi khi kết nối với máy chủ: {e}")
        except ValueError:
            # JSON 이 아닌 본문
            raise TransportFailure("Phản hồi từ máy chủ không hợp lệ")

    # ===============================================================
    # 성적 조회/변경
    # ===============================================================

    async def fetch_grades(self, filters: Optional[GradeFilterParams] = None) -> RawResponse:
        params = filters.to_query() if filters else {}
        return await self._request("GET", API_PATH, params=params)

    async def create_grade(self, payload: Dict[str, Any]) -> RawResponse:
        return await self._request("POST", API_PATH, json=payload)

    async def patch_grade(self, grade_id: str, payload: Dict[str, Any]) -> RawResponse:
        return await self._request("PUT", f"{API_PATH}/{grade_id}", json=payload)

    async def delete_grade(self, grade_id: str) -> RawResponse:
        return await self._request("DELETE", f"{API_PATH}/{grade_id}")

    async def patch_grade_status(self, grade_id: str, status: str) -> RawResponse:
        return await self._request("PATCH", f"{API_PATH}/{grade_id}/status", json={"status": status})

    async def fetch_student_grades(self, student_id: str) -> RawResponse:
        return await self._request("GET", f"{API_PATH}/student/{student_id}")

    async def fetch_transcript(self) -> RawResponse:
        return await self._request("GET", f"{API_PATH}/transcript")

    async def fetch_course_grades(self, course_id: str) -> RawResponse:
        return await self._request("GET", f"{API_PATH}/course/{course_id}")

    async def fetch_current_semester_grades(self) -> RawResponse:
        return await self._request("GET", f"{API_PATH}/current-semester")

    async def fetch_gpa_stats(self) -> RawResponse:
        return await self._request("GET", f"{API_PATH}/gpa-stats")

    async def fetch_semesters(self) -> RawResponse:
        return await self._request("GET", f"{API_PATH}/semesters")


def _safe_json(response: httpx.Response) -> Optional[dict]:
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None
