"""
services/grade_controller.py

- 성적 목록/통계 상태를 소유하는 조율자
- 원격 호출은 주입된 GradeDataAccess 로만 하고, 결과는 normalizer 를 거쳐 canonical 모델로 보관
- 실패(전송 실패 / success=false)는 동일하게 처리: 보관 상태는 그대로, 메시지 전달, 중립 결과 반환
- asyncio 단일 스레드 전제. 같은 key 의 읽기 요청은 진행 중인 왕복 하나를 공유하고,
  서로 다른 작업은 독립적으로 진행 (보관 목록은 마지막으로 끝난 쓰기가 이김)
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from schemas.grades import (
    CourseGradeRecord,
    CourseGradeStats,
    CourseGradesView,
    GpaStatsView,
    GradeCreate,
    GradeFilterParams,
    GradeStateView,
    GradeStatus,
    GradeUpdate,
    OverviewSnapshot,
    SemesterInfo,
    SemesterSummary,
    StudentInfo,
    StudentSummary,
    TranscriptView,
)
from services import grade_aggregator as agg
from services.errors import GradeServiceError, SemanticFailure
from services.grade_data_access import GradeDataAccess
from services.grade_normalizer import (
    NormalizedGrades,
    course_grade_stats,
    failure_message,
    is_failure,
    normalize,
    normalize_record,
    semester_list,
    semester_progress,
    semester_stats,
)
from services.local_cache import LocalCache

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]


class ControllerState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


def _log_notify(level: str, message: str) -> None:
    if level == "error":
        logger.warning(message)
    else:
        logger.info(message)


class GradeStateController:
    def __init__(
        self,
        data_access: GradeDataAccess,
        cache: Optional[LocalCache] = None,
        notify: Optional[Notifier] = None,
    ):
        self.data_access = data_access
        self.cache = cache
        self.notify = notify or _log_notify

        # ✅ 화면 계층에 노출되는 상태
        self.records: List[CourseGradeRecord] = []
        self.stats: Optional[OverviewSnapshot] = None
        self._refreshing = 0
        self.state: ControllerState = ControllerState.IDLE
        self.error: Optional[str] = None

        self._active = 0
        self._inflight: Dict[str, asyncio.Future] = {}
        self._student_id: Optional[str] = None

    @property
    def loading(self) -> bool:
        return self._active > 0

    @property
    def refreshing(self) -> bool:
        return self._refreshing > 0

    def view(self) -> GradeStateView:
        return GradeStateView(
            records=list(self.records),
            stats=self.stats,
            loading=self.loading,
            refreshing=self.refreshing,
            state=self.state.value,
            error=self.error,
        )

    @staticmethod
    def summary_cache_key(student_id: str) -> str:
        return f"student-grades:{student_id}"

    # ==========================================================
    # [공통] 호출 / 실패 처리 / 진행 중 요청 공유
    # ==========================================================

    async def _call(self, fetch: Callable[[], Awaitable[Any]], default_message: str) -> Optional[Any]:
        """협력 객체 호출. 성공 응답이면 원본 payload, 실패면 None"""
        self._active += 1
        self.state = ControllerState.LOADING
        ok = False
        try:
            raw = await fetch()
            if is_failure(raw):
                raise SemanticFailure(failure_message(raw, default_message), payload=raw)
            ok = True
            return raw
        except GradeServiceError as e:
            self._report_failure(e.message or default_message, e)
            return None
        except Exception as e:
            # 협력 객체가 reject 한 경우는 모두 전송 실패로 취급
            self._report_failure(default_message, e)
            return None
        finally:
            self._active -= 1
            if ok:
                self.error = None
            if self._active == 0:
                self.state = ControllerState.READY if self.error is None else ControllerState.ERROR

    def _report_failure(self, message: str, exc: Exception) -> None:
        logger.warning(f"성적 요청 실패: {message} ({type(exc).__name__})")
        self.error = message
        self.notify("error", message)

    async def _shared(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task

            def _release(done: asyncio.Future, key: str = key) -> None:
                if self._inflight.get(key) is done:
                    del self._inflight[key]

            task.add_done_callback(_release)
        else:
            logger.debug(f"진행 중인 요청 재사용 key={key}")
        # 대기자 하나가 취소돼도 공유 작업은 계속
        return await asyncio.shield(task)

    def _fallback_stats(self, records: List[CourseGradeRecord],
                        student_info: Optional[StudentInfo] = None) -> OverviewSnapshot:
        if self.stats is not None:
            return self.stats
        return agg.aggregate(records, student_info=student_info)

    def _after_mutation(self) -> None:
        self.stats = agg.recount(self.stats, self.records)
        if self.cache is not None and self._student_id is not None:
            self.cache.invalidate(self.summary_cache_key(self._student_id))

    # ==========================================================
    # [조회] 목록
    # ==========================================================

    async def list_grades(self, filters: Optional[GradeFilterParams] = None) -> List[CourseGradeRecord]:
        filters = filters or GradeFilterParams()
        return await self._shared(f"list:{filters.cache_key()}", lambda: self._list_grades(filters))

    async def _list_grades(self, filters: GradeFilterParams) -> List[CourseGradeRecord]:
        raw = await self._call(
            lambda: self.data_access.fetch_grades(filters),
            "Không thể tải danh sách điểm",
        )
        if raw is None:
            return []

        result = normalize(raw)
        stats = result.stats if result.stats is not None else self._fallback_stats(result.records)
        # 목록과 통계는 한 번에 교체
        self.records, self.stats = result.records, stats
        return list(result.records)

    async def refresh(self, filters: Optional[GradeFilterParams] = None) -> List[CourseGradeRecord]:
        # 필터가 다른 refresh 가 겹칠 수 있으므로 카운터로 관리
        self._refreshing += 1
        try:
            return await self.list_grades(filters)
        finally:
            self._refreshing -= 1

    # ==========================================================
    # [변경] 추가 / 수정 / 삭제 / 상태 변경
    # ==========================================================

    async def _mutate_one(self, fetch: Callable[[], Awaitable[Any]], default_message: str) -> Optional[CourseGradeRecord]:
        raw = await self._call(fetch, default_message)
        if raw is None:
            return None
        record = normalize_record(raw)
        if record is None:
            self._report_failure(default_message, SemanticFailure(default_message, payload=raw))
            self.state = ControllerState.ERROR
            return None
        if isinstance(raw, dict) and raw.get("message"):
            self.notify("success", raw["message"])
        return record

    async def add_grade(self, data: Union[GradeCreate, Dict[str, Any]]) -> Optional[CourseGradeRecord]:
        payload = data.to_payload() if isinstance(data, GradeCreate) else dict(data)
        record = await self._mutate_one(
            lambda: self.data_access.create_grade(payload),
            "Không thể thêm điểm",
        )
        if record is None:
            return None
        # 최신 항목이 맨 앞. 같은 id 가 이미 있으면(재시도) 중복 없이 교체
        self.records = [record] + [r for r in self.records if r.id != record.id]
        self._after_mutation()
        return record

    async def update_grade(self, grade_id: str, patch: Union[GradeUpdate, Dict[str, Any]]) -> Optional[CourseGradeRecord]:
        payload = patch.to_payload() if isinstance(patch, GradeUpdate) else dict(patch)
        record = await self._mutate_one(
            lambda: self.data_access.patch_grade(grade_id, payload),
            "Không thể cập nhật điểm",
        )
        if record is None:
            return None
        self._replace(grade_id, record)
        return record

    async def change_status(self, grade_id: str, status: Union[GradeStatus, str]) -> Optional[CourseGradeRecord]:
        try:
            status_value = GradeStatus(status).value
        except ValueError:
            self._report_failure(f"Trạng thái không hợp lệ: {status}", ValueError(status))
            self.state = ControllerState.ERROR
            return None
        record = await self._mutate_one(
            lambda: self.data_access.patch_grade_status(grade_id, status_value),
            "Không thể cập nhật trạng thái điểm",
        )
        if record is None:
            return None
        self._replace(grade_id, record)
        return record

    def _replace(self, grade_id: str, record: CourseGradeRecord) -> None:
        # 위치 유지한 채 교체
        self.records = [record if r.id == grade_id else r for r in self.records]
        self._after_mutation()

    async def delete_grade(self, grade_id: str) -> bool:
        raw = await self._call(
            lambda: self.data_access.delete_grade(grade_id),
            "Không thể xóa điểm",
        )
        if raw is None:
            return False
        self.records = [r for r in self.records if r.id != grade_id]
        self._after_mutation()
        if isinstance(raw, dict) and raw.get("message"):
            self.notify("success", raw["message"])
        return True

    # ==========================================================
    # [조회] 학생별 요약 (캐시 우선)
    # ==========================================================

    async def get_student_summary(
        self,
        student_id: str,
        student_info: Optional[StudentInfo] = None,
        max_age_ms: Optional[int] = None,
        force_refresh: bool = False,
    ) -> Optional[StudentSummary]:
        key = self.summary_cache_key(student_id)
        if not force_refresh:
            cached = self._read_summary(key, max_age_ms)
            if cached is not None:
                logger.debug(f"캐시된 학생 성적 사용 student_id={student_id}")
                self.records, self.stats = list(cached.records), cached.stats
                self._student_id = student_id
                if not self.loading:
                    self.state = ControllerState.READY
                return cached
        return await self._shared(key, lambda: self._fetch_student_summary(student_id, student_info))

    async def _fetch_student_summary(self, student_id: str,
                                     student_info: Optional[StudentInfo]) -> Optional[StudentSummary]:
        raw = await self._call(
            lambda: self.data_access.fetch_student_grades(student_id),
            "Không thể tải điểm sinh viên",
        )
        if raw is None:
            return None

        result = normalize(raw)
        stats = self._project_stats(
            result, student_info, keep_previous=self._student_id in (None, student_id)
        )

        self.records, self.stats = result.records, stats
        self._student_id = student_id

        summary = StudentSummary(records=result.records, stats=stats)
        if self.cache is not None:
            self.cache.put(self.summary_cache_key(student_id), summary.model_dump(mode="json"))
        return summary

    def _project_stats(self, result: NormalizedGrades, student_info: Optional[StudentInfo],
                       keep_previous: bool = True) -> OverviewSnapshot:
        if result.stats is not None:
            return result.stats
        if self.stats is not None and keep_previous:
            # stats 가 빠진 응답: 이전 값을 유지 (0 으로 리셋하지 않음)
            return self.stats
        return agg.aggregate(result.records, student_info=student_info)

    def _read_summary(self, key: str, max_age_ms: Optional[int]) -> Optional[StudentSummary]:
        if self.cache is None:
            return None
        payload = self.cache.get(key, max_age_ms)
        if payload is None:
            return None
        try:
            return StudentSummary.model_validate(payload)
        except ValidationError:
            logger.debug(f"캐시 payload 형식 불일치, miss 처리 key={key}")
            return None

    # ==========================================================
    # [조회] 성적표 (전체 요약 + 학기별)
    # ==========================================================

    async def get_transcript(self) -> Optional[TranscriptView]:
        return await self._shared("transcript", self._fetch_transcript)

    async def _fetch_transcript(self) -> Optional[TranscriptView]:
        raw = await self._call(self.data_access.fetch_transcript, "Không thể tải bảng điểm")
        if raw is None:
            return None

        result = normalize(raw)
        overview = result.stats if result.stats is not None else self._fallback_stats(result.records)
        semesters = semester_stats(raw) or agg.summarize_semesters(result.records)

        self.records, self.stats = result.records, overview
        return TranscriptView(records=result.records, overview=overview, semesters=semesters)

    # ==========================================================
    # [조회] 과목별 / 현재 학기 / GPA 통계 / 학기 목록
    # ==========================================================

    async def get_course_grades(self, course_id: str) -> Optional[CourseGradesView]:
        return await self._shared(f"course:{course_id}", lambda: self._fetch_course_grades(course_id))

    async def _fetch_course_grades(self, course_id: str) -> Optional[CourseGradesView]:
        raw = await self._call(
            lambda: self.data_access.fetch_course_grades(course_id),
            "Không thể tải điểm của khóa học",
        )
        if raw is None:
            return None

        # 과목 응답의 stats 는 점수 통계 모양이라 전체 요약으로 쓰지 않는다
        records = normalize(raw).records
        self.records, self.stats = records, agg.recount(self.stats, records)
        return CourseGradesView(
            course_id=course_id,
            records=records,
            stats=course_grade_stats(raw) or agg.course_stats(records),
        )

    async def get_current_semester_grades(
        self, student_info: Optional[StudentInfo] = None
    ) -> Optional[StudentSummary]:
        return await self._shared(
            "current-semester", lambda: self._fetch_current_semester_grades(student_info)
        )

    async def _fetch_current_semester_grades(
        self, student_info: Optional[StudentInfo]
    ) -> Optional[StudentSummary]:
        raw = await self._call(
            self.data_access.fetch_current_semester_grades,
            "Không thể tải điểm học kỳ hiện tại",
        )
        if raw is None:
            return None

        result = normalize(raw)
        stats = self._project_stats(result, student_info)
        self.records, self.stats = result.records, stats
        return StudentSummary(records=result.records, stats=stats)

    async def get_gpa_stats(self) -> Optional[GpaStatsView]:
        return await self._shared("gpa-stats", self._fetch_gpa_stats)

    async def _fetch_gpa_stats(self) -> Optional[GpaStatsView]:
        raw = await self._call(self.data_access.fetch_gpa_stats, "Không thể tải thống kê GPA")
        if raw is None:
            return None

        overview = normalize(raw).stats
        if overview is not None:
            self.stats = overview
        return GpaStatsView(overview=overview, semester_progress=semester_progress(raw))

    async def get_semesters(self) -> List[SemesterInfo]:
        return await self._shared("semesters", self._fetch_semesters)

    async def _fetch_semesters(self) -> List[SemesterInfo]:
        raw = await self._call(self.data_access.fetch_semesters, "Không thể tải danh sách học kỳ")
        if raw is None:
            return []
        return semester_list(raw)

    # ==========================================================
    # [파생 뷰] 보관 중인 목록 기준
    # ==========================================================

    def course_stats(self) -> CourseGradeStats:
        return agg.course_stats(self.records)

    def semesters(self) -> Dict[str, List[CourseGradeRecord]]:
        return dict(agg.group_by_semester(self.records))

    def semester_summaries(self) -> List[SemesterSummary]:
        return agg.summarize_semesters(self.records)
