"""
services/grade_normalizer.py

- 서버 응답 모양이 제각각이라(data / data.data / 평면 배열 / stats 위치도 여러 곳)
  호출부마다 if 분기를 흩뿌리지 않고, 우선순위가 있는 "shape 규칙" 목록으로 해석한다.
- 규칙 = (이름, 추출 함수). 추출 함수가 None 이 아닌 값을 돌려주면 그 규칙이 이긴다.
- 모든 함수는 입력만 보는 순수 함수 (로그 외 부작용 없음).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

from pydantic import ValidationError

from schemas.grades import (
    CourseGradeRecord,
    CourseGradeStats,
    CourseRef,
    GradeStatus,
    OverviewSnapshot,
    ScoreComponent,
    SemesterInfo,
    SemesterProgress,
    SemesterSummary,
)
from services.grade_calculator import compute_composite

logger = logging.getLogger(__name__)

ShapeRule = Tuple[str, Callable[[Any], Any]]


@dataclass
class NormalizedGrades:
    records: List[CourseGradeRecord] = field(default_factory=list)
    stats: Optional[OverviewSnapshot] = None
    success: bool = True
    message: Optional[str] = None


# =========================================================
# 공통 헬퍼
# =========================================================

def _get(obj: Any, *path: str) -> Any:
    cur = obj
    for key in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def _as_list(value: Any) -> Optional[list]:
    return value if isinstance(value, list) else None


def _as_dict(value: Any) -> Optional[dict]:
    return value if isinstance(value, dict) else None


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    # "NaN" / "inf" 문자열도 float 변환은 성공하므로 별도로 거른다
    return result if math.isfinite(result) else default


def _first_present(*values: Any) -> Any:
    for v in values:
        if v is not None:
            return v
    return None


def _str_or_none(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def _run_rules(raw: Any, rules: List[ShapeRule]) -> Tuple[Optional[str], Any]:
    for name, extract in rules:
        found = extract(raw)
        if found is not None:
            return name, found
    return None, None


def is_failure(raw: Any) -> bool:
    return isinstance(raw, dict) and raw.get("success") is False


def failure_message(raw: Any, default: Optional[str] = None) -> Optional[str]:
    if not isinstance(raw, dict):
        return default
    return raw.get("error") or raw.get("message") or default


# =========================================================
# Shape 규칙 (우선순위 순서)
# =========================================================

RECORD_LIST_RULES: List[ShapeRule] = [
    ("data.data", lambda raw: _as_list(_get(raw, "data", "data"))),
    ("data", lambda raw: _as_list(_get(raw, "data"))),
    ("root", _as_list),
]

SINGLE_RECORD_RULES: List[ShapeRule] = [
    ("data.data", lambda raw: _as_dict(_get(raw, "data", "data"))),
    ("data", lambda raw: _as_dict(_get(raw, "data"))),
]

STATS_RULES: List[ShapeRule] = [
    ("data.stats", lambda raw: _as_dict(_get(raw, "data", "stats"))),
    ("stats", lambda raw: _as_dict(_get(raw, "stats"))),
    ("overview", lambda raw: _as_dict(_get(raw, "overview"))),
    ("data.overview", lambda raw: _as_dict(_get(raw, "data", "overview"))),
]

SEMESTER_STATS_RULES: List[ShapeRule] = [
    ("semesterStats", lambda raw: _as_list(_get(raw, "semesterStats"))),
    ("data.semesterStats", lambda raw: _as_list(_get(raw, "data", "semesterStats"))),
]


# =========================================================
# 레코드 파싱
# =========================================================

def _parse_semester(raw: Any) -> Optional[SemesterInfo]:
    if isinstance(raw, str):
        # populate 안 된 ObjectId 문자열
        return SemesterInfo(id=raw)
    if not isinstance(raw, dict):
        return None
    year = raw.get("academicYear")
    if isinstance(year, dict):
        year = year.get("name")
    return SemesterInfo(
        id=_str_or_none(_first_present(raw.get("_id"), raw.get("id"))),
        display_name=_str_or_none(_first_present(raw.get("displayName"), raw.get("name"))),
        academic_year=_str_or_none(year),
    )


def _parse_course(raw: Any) -> CourseRef:
    if isinstance(raw, str):
        return CourseRef(course_id=raw)
    if not isinstance(raw, dict):
        return CourseRef()
    return CourseRef(
        course_id=_str_or_none(_first_present(raw.get("_id"), raw.get("id"))),
        code=_str_or_none(_first_present(raw.get("code"), raw.get("id"))),
        name=_str_or_none(raw.get("name")),
        credits=_to_float(raw.get("credits")),
        instructor_name=_str_or_none(_get(raw, "instructorId", "fullName")),
        semester=_parse_semester(raw.get("semesterInfo")),
    )


def _parse_components(raw: dict) -> List[ScoreComponent]:
    explicit = raw.get("components")
    if isinstance(explicit, list):
        return [
            ScoreComponent(
                name=str(c.get("name") or ""),
                score=_to_float(c.get("score")),
                max_score=_to_float(c.get("maxScore"), 10.0),
            )
            for c in explicit
            if isinstance(c, dict)
        ]

    scores = raw.get("scores")
    if not isinstance(scores, dict):
        return []

    # scores 객체 → 분류 키워드에 맞는 이름으로 구성요소 합성
    components: List[ScoreComponent] = []
    for key, label in (("attendance", "Điểm danh"), ("midterm", "Giữa kỳ"), ("final", "Cuối kỳ")):
        if scores.get(key) is not None:
            components.append(ScoreComponent(name=label, score=_to_float(scores[key])))
    for assignment in scores.get("assignments") or []:
        if isinstance(assignment, dict):
            components.append(
                ScoreComponent(
                    name=f"Bài tập: {assignment.get('name') or ''}".strip(),
                    score=_to_float(assignment.get("score")),
                    max_score=_to_float(assignment.get("maxScore"), 10.0),
                )
            )
    return components


def _parse_status(value: Any) -> GradeStatus:
    try:
        return GradeStatus(str(value).lower())
    except ValueError:
        return GradeStatus.PENDING


def parse_record(raw: Any) -> Optional[CourseGradeRecord]:
    """서버 레코드 1건 → CourseGradeRecord. 식별자가 없거나 dict 가 아니면 None"""
    if not isinstance(raw, dict):
        return None
    record_id = _first_present(raw.get("_id"), raw.get("id"))
    if record_id is None:
        return None

    components = _parse_components(raw)
    server_score = _first_present(
        raw.get("finalGrade"),
        raw.get("totalGrade"),
        _get(raw, "scores", "total"),
    )
    if server_score is not None:
        composite = _to_float(server_score)
    elif components:
        composite = compute_composite(components)
    else:
        composite = 0.0

    student = raw.get("studentId")
    if isinstance(student, dict):
        student = _first_present(student.get("_id"), student.get("id"))

    try:
        return CourseGradeRecord(
            id=str(record_id),
            course=_parse_course(raw.get("courseId")),
            components=components,
            composite_score=composite,
            status=_parse_status(raw.get("status")),
            student_id=_str_or_none(student),
            feedback=_str_or_none(raw.get("feedback")),
            last_updated_at=_first_present(raw.get("updatedAt"), raw.get("createdAt")),
        )
    except ValidationError as e:
        logger.warning(f"성적 레코드 파싱 실패 id={record_id}: {e}")
        return None


def parse_stats(raw: Any) -> Optional[OverviewSnapshot]:
    """overview 모양(cumulativeGPA...)과 학생 stats 모양(gpa...) 모두 허용"""
    if not isinstance(raw, dict):
        return None
    return OverviewSnapshot(
        total_credits=_to_float(raw.get("totalCredits")),
        total_courses=int(_to_float(raw.get("totalCourses"))),
        completed_courses=int(_to_float(raw.get("completedCourses"))),
        pending_courses=int(_to_float(raw.get("pendingCourses"))),
        failed_courses=int(_to_float(raw.get("failedCourses"))),
        cumulative_gpa=_to_float(_first_present(raw.get("cumulativeGPA"), raw.get("gpa"))),
        gpa_source="server",
    )


# =========================================================
# 공개 API
# =========================================================

def normalize(raw: Any) -> NormalizedGrades:
    if is_failure(raw):
        return NormalizedGrades(success=False, message=failure_message(raw))

    rule, items = _run_rules(raw, RECORD_LIST_RULES)
    records: List[CourseGradeRecord] = []
    for item in items or []:
        record = parse_record(item)
        if record is None:
            logger.warning(f"형식이 맞지 않는 성적 항목 건너뜀 (rule={rule})")
            continue
        records.append(record)

    _, stats_raw = _run_rules(raw, STATS_RULES)
    return NormalizedGrades(
        records=records,
        stats=parse_stats(stats_raw),
        message=failure_message(raw),
    )


def normalize_record(raw: Any) -> Optional[CourseGradeRecord]:
    """단건 응답(생성/수정/상태변경) 정규화. 실패 응답이면 None"""
    if is_failure(raw):
        return None
    _, item = _run_rules(raw, SINGLE_RECORD_RULES)
    return parse_record(item)


def semester_stats(raw: Any) -> List[SemesterSummary]:
    _, items = _run_rules(raw, SEMESTER_STATS_RULES)
    summaries: List[SemesterSummary] = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        summaries.append(
            SemesterSummary(
                semester_id=str(item.get("semesterId") or ""),
                semester_name=str(item.get("semesterName") or ""),
                year=str(item.get("year") or ""),
                gpa=_to_float(item.get("gpa")),
                total_credits=_to_float(item.get("totalCredits")),
                completed_credits=_to_float(item.get("completedCredits")),
                failed_credits=_to_float(item.get("failedCredits")),
                completed_courses=int(_to_float(item.get("completedCourses"))),
            )
        )
    return summaries


def semester_list(raw: Any) -> List[SemesterInfo]:
    """학기 목록 응답 → SemesterInfo 목록. 실패 응답이면 빈 목록"""
    if is_failure(raw):
        return []
    _, items = _run_rules(raw, RECORD_LIST_RULES)
    semesters: List[SemesterInfo] = []
    for item in items or []:
        semester = _parse_semester(item)
        if semester is None:
            continue
        semesters.append(semester)
    return semesters


def course_grade_stats(raw: Any) -> Optional[CourseGradeStats]:
    """과목별 성적 응답의 stats(total/passed/highestGrade...) 블록"""
    _, stats = _run_rules(raw, STATS_RULES)
    if stats is None or "total" not in stats:
        return None
    return CourseGradeStats(
        total=int(_to_float(stats.get("total"))),
        passed=int(_to_float(stats.get("passed"))),
        failed=int(_to_float(stats.get("failed"))),
        pending=int(_to_float(stats.get("pending"))),
        highest_grade=_to_float(stats.get("highestGrade")),
        lowest_grade=_to_float(stats.get("lowestGrade")),
        average_grade=_to_float(stats.get("averageGrade")),
    )


def semester_progress(raw: Any) -> SemesterProgress:
    progress = _as_dict(
        _first_present(_get(raw, "data", "semesterProgress"), _get(raw, "semesterProgress"))
    ) or {}
    return SemesterProgress(
        labels=[str(v) for v in _as_list(progress.get("labels")) or []],
        gpas=[_to_float(v) for v in _as_list(progress.get("gpas")) or []],
        credits=[_to_float(v) for v in _as_list(progress.get("credits")) or []],
    )
