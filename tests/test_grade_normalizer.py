from unittest import TestCase

from schemas.grades import GradeStatus
from services.grade_normalizer import (
    course_grade_stats,
    normalize,
    normalize_record,
    parse_record,
    semester_list,
    semester_progress,
    semester_stats,
)
from tests.fakes import raw_grade


class NormalizeListTests(TestCase):
    def test_nested_and_flat_shapes_are_equivalent(self):
        items = [raw_grade("g1", 8.0), raw_grade("g2", 5.0)]
        nested = normalize({"success": True, "data": {"data": items}})
        flat = normalize({"success": True, "data": items})
        bare = normalize(items)

        self.assertEqual([r.id for r in nested.records], ["g1", "g2"])
        self.assertEqual(nested.records, flat.records)
        self.assertEqual(nested.records, bare.records)

    def test_failure_response_yields_no_records(self):
        result = normalize({"success": False, "message": "Không có quyền"})
        self.assertFalse(result.success)
        self.assertEqual(result.records, [])
        self.assertEqual(result.message, "Không có quyền")

    def test_unrecognized_shape_is_empty(self):
        self.assertEqual(normalize({"success": True, "data": "??"}).records, [])
        self.assertEqual(normalize(None).records, [])

    def test_malformed_items_are_skipped(self):
        items = [raw_grade("g1"), "garbage", {"no": "id"}, raw_grade("g2")]
        result = normalize({"data": items})
        self.assertEqual([r.id for r in result.records], ["g1", "g2"])

    def test_stats_lookup_order(self):
        items = [raw_grade("g1")]
        in_data = normalize({"data": {"data": items, "stats": {"gpa": 3.1, "totalCredits": 12}}})
        self.assertEqual(in_data.stats.cumulative_gpa, 3.1)
        self.assertEqual(in_data.stats.total_credits, 12)
        self.assertEqual(in_data.stats.gpa_source, "server")

        top_level = normalize({"data": items, "stats": {"gpa": 2.0}})
        self.assertEqual(top_level.stats.cumulative_gpa, 2.0)

        overview = normalize({"data": items, "overview": {"cumulativeGPA": 3.45, "totalCourses": 9}})
        self.assertEqual(overview.stats.cumulative_gpa, 3.45)
        self.assertEqual(overview.stats.total_courses, 9)

        nested_overview = normalize({"data": {"overview": {"cumulativeGPA": 1.5}}})
        self.assertEqual(nested_overview.stats.cumulative_gpa, 1.5)

    def test_missing_stats_is_none(self):
        self.assertIsNone(normalize({"data": [raw_grade("g1")]}).stats)


class ParseRecordTests(TestCase):
    def test_server_letter_is_ignored(self):
        record = parse_record(raw_grade("g1", total=6.0))
        self.assertEqual(record.composite_score, 6.0)
        self.assertEqual(record.letter_grade, "C+")

    def test_course_fields(self):
        record = parse_record(raw_grade("g1", credits=4, semester="Học kỳ 2 - 2023"))
        self.assertEqual(record.course.course_id, "course-g1")
        self.assertEqual(record.course.code, "ITg1")
        self.assertEqual(record.course.credits, 4)
        self.assertEqual(record.course.instructor_name, "Nguyễn Văn A")
        self.assertEqual(record.course.semester_label, "Học kỳ 2 - 2023")
        self.assertEqual(record.status, GradeStatus.COMPLETED)

    def test_numeric_ids_become_strings(self):
        raw = raw_grade("x", studentId={"_id": 42})
        raw["_id"] = 1001
        record = parse_record(raw)
        self.assertEqual(record.id, "1001")
        self.assertEqual(record.student_id, "42")

    def test_composite_source_order(self):
        raw = raw_grade("g1", total=None, totalGrade=7.2, scores={"total": 3.0, "final": 1.0})
        self.assertEqual(parse_record(raw).composite_score, 7.2)

        raw = raw_grade("g1", total=None, scores={"total": 3.0, "final": 1.0})
        self.assertEqual(parse_record(raw).composite_score, 3.0)

    def test_scores_object_is_turned_into_components(self):
        raw = raw_grade(
            "g1",
            total=None,
            scores={
                "midterm": 8,
                "final": 6,
                "attendance": 10,
                "assignments": [{"name": "Lab 1", "score": 9, "maxScore": 10}],
            },
        )
        record = parse_record(raw)
        names = [c.name for c in record.components]
        self.assertEqual(names, ["Điểm danh", "Giữa kỳ", "Cuối kỳ", "Bài tập: Lab 1"])
        # (10*0.1 + 8*0.3 + 6*0.6 + 9*0.1) / 1.1
        self.assertAlmostEqual(record.composite_score, 7.9 / 1.1)

    def test_explicit_components(self):
        raw = raw_grade("g1", total=None, components=[{"name": "Giữa kỳ", "score": 8, "maxScore": 10}])
        record = parse_record(raw)
        self.assertEqual(record.composite_score, 8.0)
        self.assertEqual(record.letter_grade, "B+")

    def test_no_score_information_is_zero(self):
        record = parse_record(raw_grade("g1", total=None))
        self.assertEqual(record.composite_score, 0.0)
        self.assertEqual(record.letter_grade, "F")

    def test_out_of_range_score_is_clamped(self):
        self.assertEqual(parse_record(raw_grade("g1", total=12.5)).composite_score, 10.0)
        self.assertEqual(parse_record(raw_grade("g2", total=-1)).composite_score, 0.0)

    def test_non_finite_totals_fall_back_to_zero(self):
        for total in ["NaN", "nan", "inf", "-Infinity", float("nan"), float("inf")]:
            record = parse_record(raw_grade("g1", total=total))
            self.assertEqual(record.composite_score, 0.0, total)
            self.assertEqual(record.letter_grade, "F")

    def test_non_finite_scores_object_is_ignored(self):
        raw = raw_grade("g1", total=None, scores={"midterm": "NaN", "final": 8})
        # midterm 0 으로 취급: (0*0.3 + 8*0.6) / 0.9
        self.assertAlmostEqual(parse_record(raw).composite_score, 4.8 / 0.9)

    def test_with_changes_cannot_store_non_finite_score(self):
        record = parse_record(raw_grade("g1", total=8.0))
        self.assertEqual(record.with_changes(composite_score=float("nan")).composite_score, 0.0)
        self.assertEqual(record.with_changes(composite_score=float("inf")).composite_score, 0.0)

    def test_unknown_status_defaults_to_pending(self):
        self.assertEqual(parse_record(raw_grade("g1", status="weird")).status, GradeStatus.PENDING)

    def test_unpopulated_course_reference(self):
        raw = raw_grade("g1")
        raw["courseId"] = "abc123"
        record = parse_record(raw)
        self.assertEqual(record.course.course_id, "abc123")
        self.assertIsNone(record.course.semester_label)


class NormalizeRecordTests(TestCase):
    def test_single_record_shapes(self):
        nested = normalize_record({"success": True, "data": {"data": raw_grade("g1")}})
        flat = normalize_record({"success": True, "data": raw_grade("g1")})
        self.assertEqual(nested, flat)
        self.assertEqual(nested.id, "g1")

    def test_failure_is_none(self):
        self.assertIsNone(normalize_record({"success": False, "message": "x", "data": raw_grade("g1")}))
        self.assertIsNone(normalize_record({"success": True}))


class SemesterStatsTests(TestCase):
    def test_reads_server_semester_stats(self):
        raw = {
            "success": True,
            "data": [],
            "semesterStats": [
                {"semesterId": "s1", "semesterName": "HK1", "year": "2024", "gpa": 3.2,
                 "totalCredits": 15, "completedCredits": 12, "failedCredits": 3, "completedCourses": 4},
                "skip-me",
            ],
        }
        stats = semester_stats(raw)
        self.assertEqual(len(stats), 1)
        self.assertEqual(stats[0].semester_name, "HK1")
        self.assertEqual(stats[0].completed_courses, 4)

    def test_absent_is_empty(self):
        self.assertEqual(semester_stats({"data": []}), [])


class SemesterListTests(TestCase):
    def test_nested_and_flat_lists(self):
        items = [{"_id": "s1", "displayName": "HK1 2024", "academicYear": "2024-2025"}, {"id": 7, "name": "HK2"}]
        nested = semester_list({"success": True, "data": {"data": items}})
        flat = semester_list({"success": True, "data": items})
        self.assertEqual(nested, flat)
        self.assertEqual([s.id for s in flat], ["s1", "7"])
        self.assertEqual(flat[1].display_name, "HK2")

    def test_failure_is_empty(self):
        self.assertEqual(semester_list({"success": False, "data": [{"_id": "s1"}]}), [])


class CourseGradeStatsTests(TestCase):
    def test_reads_score_stats(self):
        stats = course_grade_stats({"data": {"data": [], "stats": {"total": 3, "passed": 2, "averageGrade": "7.5"}}})
        self.assertEqual(stats.total, 3)
        self.assertEqual(stats.passed, 2)
        self.assertEqual(stats.average_grade, 7.5)

    def test_overview_shaped_stats_are_not_course_stats(self):
        self.assertIsNone(course_grade_stats({"data": [], "stats": {"gpa": 3.0}}))
        self.assertIsNone(course_grade_stats({"data": []}))


class SemesterProgressTests(TestCase):
    def test_nested_progress(self):
        progress = semester_progress({"data": {"semesterProgress": {"labels": ["HK1"], "gpas": ["NaN"], "credits": [15]}}})
        self.assertEqual(progress.labels, ["HK1"])
        self.assertEqual(progress.gpas, [0.0])
        self.assertEqual(progress.credits, [15.0])

    def test_absent_is_empty(self):
        progress = semester_progress({"success": True})
        self.assertEqual((progress.labels, progress.gpas, progress.credits), ([], [], []))
