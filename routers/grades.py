from typing import List, Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from dependencies.controller import GradeController
from schemas.common import ErrorDetail, ErrorResponse, SuccessEnvelope
from schemas.grades import (
    CourseGradeRecord,
    CourseGradesView,
    GpaStatsView,
    GradeCreate,
    GradeFilterParams,
    GradeStateView,
    GradeStatus,
    GradeStatusUpdate,
    GradeUpdate,
    SemesterInfo,
    StudentInfo,
    StudentSummary,
    TranscriptView,
)
from services.errors import GradeServiceError
from services.grade_calculator import gpa_band, score_band

router = APIRouter(prefix="/grades", tags=["grades"])


def _failure(controller, default: str) -> GradeServiceError:
    # middlewares/error_handler.py 가 502 ErrorResponse 로 변환
    return GradeServiceError(controller.error or default)


# ==========================================================
# [상태] 화면 계층이 읽는 현재 상태
# ==========================================================

# ✅ [STATE] 보관 중인 목록/통계/로딩 플래그
@router.get("/state")
def get_state(controller: GradeController):
    return SuccessEnvelope[GradeStateView](data=controller.view())

# ✅ [SEMESTERS] 보관 중인 목록의 학기별 묶음 + 요약
@router.get("/state/semesters")
def get_held_semesters(controller: GradeController):
    return {
        "success": True,
        "data": {
            "groups": controller.semesters(),
            "summaries": controller.semester_summaries(),
            "stats": controller.course_stats(),
        },
    }

# ==========================================================
# [조회] 원격 조회 라우터
# ==========================================================

# ✅ [READ] 필터 기반 성적 목록
@router.get("/")
async def list_grades(
    controller: GradeController,
    course_id: Optional[str] = None,
    student_id: Optional[str] = None,
    status: Optional[GradeStatus] = None,
    min_grade: Optional[float] = None,
    max_grade: Optional[float] = None,
    semester_id: Optional[str] = None,
    page: Optional[int] = Query(default=None, ge=1),
    limit: Optional[int] = Query(default=None, ge=1, le=200),
    refresh: bool = False,
):
    filters = GradeFilterParams(
        course_id=course_id, student_id=student_id, status=status,
        min_grade=min_grade, max_grade=max_grade, semester_id=semester_id,
        page=page, limit=limit,
    )
    records = await (controller.refresh(filters) if refresh else controller.list_grades(filters))
    if controller.error:
        raise _failure(controller, "Không thể tải danh sách điểm")
    return {"success": True, "data": records, "stats": controller.stats}

# ✅ [READ] 특정 학생의 성적 + 요약 (studentId 는 항상 명시적으로 받음)
@router.get("/student/{student_id}")
async def get_student_grades(
    student_id: str,
    controller: GradeController,
    gpa: Optional[float] = None,
    total_credits: Optional[float] = None,
    completed_courses: Optional[int] = None,
    force_refresh: bool = False,
):
    student_info = None
    if gpa is not None or total_credits is not None or completed_courses is not None:
        student_info = StudentInfo(gpa=gpa, total_credits=total_credits, completed_courses=completed_courses)

    summary = await controller.get_student_summary(
        student_id, student_info=student_info, force_refresh=force_refresh
    )
    if summary is None:
        raise _failure(controller, "Không thể tải điểm sinh viên")

    stats = summary.stats
    return {
        "success": True,
        "data": summary,
        "display": {
            "gpa_band": gpa_band(stats.cumulative_gpa) if stats else None,
            "bands": {r.id: score_band(r.composite_score) for r in summary.records},
        },
    }

# ✅ [READ] 성적표 (전체 요약 + 학기별 통계)
@router.get("/transcript")
async def get_transcript(controller: GradeController):
    transcript = await controller.get_transcript()
    if transcript is None:
        raise _failure(controller, "Không thể tải bảng điểm")
    return SuccessEnvelope[TranscriptView](data=transcript)

# ✅ [READ] 과목별 성적 (보관 목록을 이 과목의 목록으로 교체)
@router.get("/course/{course_id}")
async def get_course_grades(course_id: str, controller: GradeController):
    view = await controller.get_course_grades(course_id)
    if view is None:
        raise _failure(controller, "Không thể tải điểm của khóa học")
    return SuccessEnvelope[CourseGradesView](data=view)

# ✅ [READ] 현재 학기 성적
@router.get("/current-semester")
async def get_current_semester_grades(controller: GradeController):
    summary = await controller.get_current_semester_grades()
    if summary is None:
        raise _failure(controller, "Không thể tải điểm học kỳ hiện tại")
    return SuccessEnvelope[StudentSummary](data=summary)

# ✅ [READ] GPA 통계 (overview + 학기별 추이)
@router.get("/gpa-stats")
async def get_gpa_stats(controller: GradeController):
    stats = await controller.get_gpa_stats()
    if stats is None:
        raise _failure(controller, "Không thể tải thống kê GPA")
    return SuccessEnvelope[GpaStatsView](data=stats)

# ✅ [READ] 학기 목록
@router.get("/semesters")
async def get_semesters(controller: GradeController):
    semesters = await controller.get_semesters()
    if controller.error and not semesters:
        raise _failure(controller, "Không thể tải danh sách học kỳ")
    return SuccessEnvelope[List[SemesterInfo]](data=semesters)

# ==========================================================
# [변경] CRUD 라우터
# ==========================================================

# ✅ [CREATE] 성적 추가 (목록 맨 앞에 삽입)
@router.post("/")
async def create_grade(grade: GradeCreate, controller: GradeController):
    record = await controller.add_grade(grade)
    if record is None:
        raise _failure(controller, "Không thể thêm điểm")
    return SuccessEnvelope[CourseGradeRecord](data=record)

# ✅ [UPDATE] 성적 수정 (위치 유지)
@router.put("/{grade_id}")
async def update_grade(grade_id: str, updated: GradeUpdate, controller: GradeController):
    record = await controller.update_grade(grade_id, updated)
    if record is None:
        raise _failure(controller, "Không thể cập nhật điểm")
    return SuccessEnvelope[CourseGradeRecord](data=record)

# ✅ [UPDATE] 성적 상태 변경
@router.patch("/{grade_id}/status")
async def update_grade_status(grade_id: str, body: GradeStatusUpdate, controller: GradeController):
    record = await controller.change_status(grade_id, body.status)
    if record is None:
        raise _failure(controller, "Không thể cập nhật trạng thái điểm")
    return SuccessEnvelope[CourseGradeRecord](data=record)

# ✅ [DELETE] 성적 삭제 (서버 실패 시 success=False, 예외 아님)
@router.delete("/{grade_id}")
async def delete_grade(grade_id: str, controller: GradeController):
    deleted = await controller.delete_grade(grade_id)
    if not deleted:
        # "변경 없음"은 정상 결과라 200 으로 내려준다
        body = ErrorResponse(
            error=ErrorDetail(code="UPSTREAM_ERROR", message=controller.error or "Không thể xóa điểm")
        )
        return JSONResponse(status_code=200, content=body.model_dump(mode="json"))
    return {"success": True, "data": {"grade_id": grade_id}}
