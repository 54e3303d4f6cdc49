"""
schemas/grades.py

- 성적 도메인의 정규화된(canonical) 모델 모음
- 서버 응답 모양과 무관하게 화면/상위 계층은 이 모델만 사용한다.
- CourseGradeRecord 는 frozen: 점수가 바뀌면 새 객체를 만들고 letter_grade 가 항상 다시 계산됨
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from services.grade_calculator import letter_for

LetterGrade = Literal["A+", "A", "B+", "B", "C+", "C", "D+", "D", "F"]
GpaSource = Literal["server", "student_info", "unknown"]


class GradeStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    FAILED = "failed"


# =========================================================
# 1) 점수 구성요소 / 과목 참조
# =========================================================

class ScoreComponent(BaseModel):
    """출석·중간·기말·과제 등 채점 항목 하나"""
    name: str
    score: float = 0.0
    max_score: float = 10.0

    model_config = ConfigDict(frozen=True)


class SemesterInfo(BaseModel):
    id: Optional[str] = None
    display_name: Optional[str] = None
    academic_year: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class CourseRef(BaseModel):
    """과목 표시용 정보 (모두 선택값, 없어도 집계가 깨지면 안 됨)"""
    course_id: Optional[str] = None
    code: Optional[str] = None
    name: Optional[str] = None
    credits: float = 0.0
    instructor_name: Optional[str] = None
    semester: Optional[SemesterInfo] = None

    model_config = ConfigDict(frozen=True)

    @property
    def semester_label(self) -> Optional[str]:
        return self.semester.display_name if self.semester else None


# =========================================================
# 2) 과목별 성적 레코드
# =========================================================

class CourseGradeRecord(BaseModel):
    id: str
    course: CourseRef = Field(default_factory=CourseRef)
    components: List[ScoreComponent] = Field(default_factory=list)
    composite_score: float = 0.0                 # 0 ~ 10
    letter_grade: LetterGrade = "F"              # composite_score 로부터 항상 파생
    status: GradeStatus = GradeStatus.PENDING
    student_id: Optional[str] = None
    feedback: Optional[str] = None
    last_updated_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _derive_letter_grade(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        try:
            score = float(data.get("composite_score") or 0)
        except (TypeError, ValueError):
            score = 0.0
        if not math.isfinite(score):
            score = 0.0
        score = min(max(score, 0.0), 10.0)
        data["composite_score"] = score
        # 서버가 준 letter 는 무시하고 항상 점수 기준으로 재계산
        data["letter_grade"] = letter_for(score)
        return data

    def with_changes(self, **changes: Any) -> "CourseGradeRecord":
        """변경값을 반영한 새 레코드 (검증을 다시 거침)"""
        return CourseGradeRecord.model_validate({**self.model_dump(), **changes})


# =========================================================
# 3) 집계 결과
# =========================================================

class SemesterSummary(BaseModel):
    semester_id: str
    semester_name: str
    year: str = ""
    gpa: float = 0.0
    total_credits: float = 0.0
    completed_credits: float = 0.0
    failed_credits: float = 0.0
    completed_courses: int = 0


class OverviewSnapshot(BaseModel):
    total_credits: float = 0.0
    total_courses: int = 0
    completed_courses: int = 0
    pending_courses: int = 0
    failed_courses: int = 0
    cumulative_gpa: float = 0.0
    # "unknown" 이면 GPA 0 은 '데이터 없음' 의미 (확정된 0 점과 구분)
    gpa_source: GpaSource = "unknown"


class CourseGradeStats(BaseModel):
    total: int = 0
    passed: int = 0
    failed: int = 0
    pending: int = 0
    highest_grade: float = 0.0
    lowest_grade: float = 0.0
    average_grade: float = 0.0


class StudentInfo(BaseModel):
    """호출자가 명시적으로 넘기는 계정 수준 학업 정보 (GPA 폴백용)"""
    gpa: Optional[float] = None
    total_credits: Optional[float] = None
    completed_courses: Optional[int] = None


class StudentSummary(BaseModel):
    records: List[CourseGradeRecord] = Field(default_factory=list)
    stats: Optional[OverviewSnapshot] = None


class TranscriptView(BaseModel):
    records: List[CourseGradeRecord] = Field(default_factory=list)
    overview: Optional[OverviewSnapshot] = None
    semesters: List[SemesterSummary] = Field(default_factory=list)


class CourseGradesView(BaseModel):
    """한 과목의 수강생 성적 목록 + 점수 통계"""
    course_id: str
    records: List[CourseGradeRecord] = Field(default_factory=list)
    stats: CourseGradeStats = Field(default_factory=CourseGradeStats)


class SemesterProgress(BaseModel):
    """학기 순서대로 나란히 놓인 GPA / 학점 추이 (차트용)"""
    labels: List[str] = Field(default_factory=list)
    gpas: List[float] = Field(default_factory=list)
    credits: List[float] = Field(default_factory=list)


class GpaStatsView(BaseModel):
    overview: Optional[OverviewSnapshot] = None
    semester_progress: SemesterProgress = Field(default_factory=SemesterProgress)


# =========================================================
# 4) 캐시 엔트리
# =========================================================

class CacheEntry(BaseModel):
    """통째로 교체만 되는 캐시 blob (부분 수정 없음)"""
    key: str
    payload: Any = None
    written_at: int  # epoch ms


# =========================================================
# 5) 요청 파라미터 (서버로 나가는 값은 camelCase)
# =========================================================

class GradeFilterParams(BaseModel):
    course_id: Optional[str] = None
    student_id: Optional[str] = None
    status: Optional[GradeStatus] = None
    min_grade: Optional[float] = None
    max_grade: Optional[float] = None
    semester_id: Optional[str] = None
    page: Optional[int] = Field(default=None, ge=1)
    limit: Optional[int] = Field(default=None, ge=1, le=200)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_query(self) -> Dict[str, str]:
        """값이 비어있는(0 포함) 항목은 쿼리에서 제외"""
        query: Dict[str, str] = {}
        for key, value in self.model_dump(by_alias=True, mode="json").items():
            if value:
                query[key] = str(value)
        return query

    def cache_key(self) -> str:
        return "&".join(f"{k}={v}" for k, v in sorted(self.to_query().items()))


class AssignmentScore(BaseModel):
    name: str
    score: float
    max_score: float = 10.0

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GradeScores(BaseModel):
    midterm: float = 0.0
    final: float = 0.0
    attendance: float = 0.0
    assignments: Optional[List[AssignmentScore]] = None
    total: Optional[float] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GradeUpdate(BaseModel):
    scores: GradeScores
    feedback: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class GradeCreate(GradeUpdate):
    student_id: str
    course_id: str


class GradeStatusUpdate(BaseModel):
    status: GradeStatus


# =========================================================
# 6) 화면 계층에 노출되는 상태
# =========================================================

class GradeStateView(BaseModel):
    records: List[CourseGradeRecord] = Field(default_factory=list)
    stats: Optional[OverviewSnapshot] = None
    loading: bool = False
    refreshing: bool = False
    state: str = "idle"
    error: Optional[str] = None
