"""
services/grade_aggregator.py

- 과목별 성적 레코드 → 전체 요약(OverviewSnapshot), 학기별 요약, 점수 통계
- GPA(0~4)는 서버가 권위. 여기서는 서버 stats 가 없을 때만 추정한다.
  폴백 순서: 서버 stats → StudentInfo(로컬에 알려진 계정 정보) → 0(gpa_source="unknown")
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Iterable, List, Optional

from schemas.grades import (
    CourseGradeRecord,
    CourseGradeStats,
    GradeStatus,
    OverviewSnapshot,
    SemesterSummary,
    StudentInfo,
)
from services.grade_calculator import grade_point_for

UNSPECIFIED_SEMESTER = "Chưa xác định"


def _credits(record: CourseGradeRecord) -> float:
    return float(record.course.credits or 0)


def _count(records: Iterable[CourseGradeRecord], status: GradeStatus) -> int:
    return sum(1 for r in records if r.status == status)


def _counts_from_records(records: List[CourseGradeRecord]) -> Dict[str, float]:
    return {
        "total_credits": sum(_credits(r) for r in records),
        "total_courses": len(records),
        "completed_courses": _count(records, GradeStatus.COMPLETED),
        "pending_courses": _count(records, GradeStatus.PENDING),
        "failed_courses": _count(records, GradeStatus.FAILED),
    }


def aggregate(
    records: List[CourseGradeRecord],
    server_stats: Optional[OverviewSnapshot] = None,
    student_info: Optional[StudentInfo] = None,
) -> OverviewSnapshot:
    # 1순위: 서버 stats 는 손대지 않고 그대로 통과
    if server_stats is not None:
        return server_stats

    snapshot = OverviewSnapshot(**_counts_from_records(records))

    # 2순위: 호출자가 넘긴 계정 정보
    if student_info is not None and student_info.gpa is not None:
        snapshot.cumulative_gpa = float(student_info.gpa)
        snapshot.gpa_source = "student_info"
    if student_info is not None and not records:
        snapshot.total_credits = float(student_info.total_credits or 0)
        snapshot.completed_courses = int(student_info.completed_courses or 0)

    # 3순위: 0 (gpa_source="unknown" 유지)
    return snapshot


def recount(stats: Optional[OverviewSnapshot], records: List[CourseGradeRecord]) -> OverviewSnapshot:
    """로컬 변경(추가/삭제/상태변경) 뒤 개수·학점만 다시 세고 GPA 는 유지"""
    snapshot = OverviewSnapshot(**_counts_from_records(records))
    if stats is not None:
        snapshot.cumulative_gpa = stats.cumulative_gpa
        snapshot.gpa_source = stats.gpa_source
    return snapshot


def group_by_semester(records: List[CourseGradeRecord]) -> "OrderedDict[str, List[CourseGradeRecord]]":
    grouped: "OrderedDict[str, List[CourseGradeRecord]]" = OrderedDict()
    for record in records:
        label = record.course.semester_label or UNSPECIFIED_SEMESTER
        grouped.setdefault(label, []).append(record)
    return grouped


def summarize_semesters(records: List[CourseGradeRecord]) -> List[SemesterSummary]:
    """학기별 요약. gpa 는 학점 가중 평점 추정치(서버 semesterStats 가 없을 때만 사용)"""
    summaries: List[SemesterSummary] = []
    for label, items in group_by_semester(records).items():
        semester = next((r.course.semester for r in items if r.course.semester), None)

        weighted, graded_credits = 0.0, 0.0
        for r in items:
            if r.status == GradeStatus.PENDING:
                continue
            weighted += grade_point_for(r.letter_grade) * _credits(r)
            graded_credits += _credits(r)

        summaries.append(
            SemesterSummary(
                semester_id=(semester.id if semester and semester.id else label),
                semester_name=label,
                year=(semester.academic_year if semester and semester.academic_year else ""),
                gpa=round(weighted / graded_credits, 2) if graded_credits else 0.0,
                total_credits=sum(_credits(r) for r in items),
                completed_credits=sum(_credits(r) for r in items if r.status == GradeStatus.COMPLETED),
                failed_credits=sum(_credits(r) for r in items if r.status == GradeStatus.FAILED),
                completed_courses=_count(items, GradeStatus.COMPLETED),
            )
        )
    return summaries


def course_stats(records: List[CourseGradeRecord]) -> CourseGradeStats:
    if not records:
        return CourseGradeStats()

    scores = [r.composite_score for r in records]
    return CourseGradeStats(
        total=len(records),
        passed=_count(records, GradeStatus.COMPLETED),
        failed=_count(records, GradeStatus.FAILED),
        pending=_count(records, GradeStatus.PENDING),
        highest_grade=round(max(scores), 2),
        lowest_grade=round(min(scores), 2),
        average_grade=round(sum(scores) / len(scores), 2),
    )
