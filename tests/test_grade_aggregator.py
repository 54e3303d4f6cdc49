from unittest import TestCase

from schemas.grades import GradeStatus, OverviewSnapshot, StudentInfo
from services.grade_aggregator import (
    UNSPECIFIED_SEMESTER,
    aggregate,
    course_stats,
    group_by_semester,
    recount,
    summarize_semesters,
)
from services.grade_normalizer import parse_record
from tests.fakes import raw_grade


def _records():
    return [
        parse_record(raw_grade("g1", 9.2, credits=3, semester="HK1")),
        parse_record(raw_grade("g2", 3.0, credits=2, semester="HK1", status="failed")),
        parse_record(raw_grade("g3", 7.0, credits=4, semester="HK2", status="pending")),
        parse_record(raw_grade("g4", 6.0, credits=3, semester=None)),
    ]


class AggregateTests(TestCase):
    def test_empty_records_all_zero(self):
        snapshot = aggregate([])
        self.assertEqual(snapshot.total_credits, 0)
        self.assertEqual(snapshot.total_courses, 0)
        self.assertEqual(snapshot.completed_courses, 0)
        self.assertEqual(snapshot.cumulative_gpa, 0)
        self.assertEqual(snapshot.gpa_source, "unknown")

    def test_server_stats_pass_through(self):
        server = OverviewSnapshot(total_courses=99, cumulative_gpa=3.3, gpa_source="server")
        self.assertIs(aggregate(_records(), server_stats=server), server)

    def test_counts_from_records(self):
        snapshot = aggregate(_records())
        self.assertEqual(snapshot.total_courses, 4)
        self.assertEqual(snapshot.total_credits, 12)
        self.assertEqual(snapshot.completed_courses, 2)
        self.assertEqual(snapshot.pending_courses, 1)
        self.assertEqual(snapshot.failed_courses, 1)
        self.assertEqual(snapshot.gpa_source, "unknown")

    def test_student_info_gpa_fallback(self):
        info = StudentInfo(gpa=3.25, total_credits=40, completed_courses=12)
        snapshot = aggregate(_records(), student_info=info)
        self.assertEqual(snapshot.cumulative_gpa, 3.25)
        self.assertEqual(snapshot.gpa_source, "student_info")
        # 레코드가 있으면 개수는 레코드 기준
        self.assertEqual(snapshot.total_credits, 12)

    def test_student_info_without_records(self):
        info = StudentInfo(gpa=2.8, total_credits=40, completed_courses=12)
        snapshot = aggregate([], student_info=info)
        self.assertEqual(snapshot.total_credits, 40)
        self.assertEqual(snapshot.completed_courses, 12)
        self.assertEqual(snapshot.cumulative_gpa, 2.8)

    def test_student_info_without_gpa_stays_unknown(self):
        snapshot = aggregate([], student_info=StudentInfo(total_credits=10))
        self.assertEqual(snapshot.cumulative_gpa, 0)
        self.assertEqual(snapshot.gpa_source, "unknown")

    def test_recount_keeps_gpa(self):
        stats = OverviewSnapshot(total_courses=10, cumulative_gpa=3.4, gpa_source="server")
        records = _records()[:2]
        snapshot = recount(stats, records)
        self.assertEqual(snapshot.total_courses, 2)
        self.assertEqual(snapshot.cumulative_gpa, 3.4)
        self.assertEqual(snapshot.gpa_source, "server")


class SemesterTests(TestCase):
    def test_group_by_semester_keeps_order_and_unspecified_bucket(self):
        groups = group_by_semester(_records())
        self.assertEqual(list(groups.keys()), ["HK1", "HK2", UNSPECIFIED_SEMESTER])
        self.assertEqual([r.id for r in groups["HK1"]], ["g1", "g2"])
        self.assertEqual([r.id for r in groups[UNSPECIFIED_SEMESTER]], ["g4"])

    def test_summaries_weight_by_credits_and_skip_pending(self):
        summaries = {s.semester_name: s for s in summarize_semesters(_records())}

        hk1 = summaries["HK1"]
        # A+(4.0)*3 + F(0)*2 = 12 / 5
        self.assertEqual(hk1.gpa, 2.4)
        self.assertEqual(hk1.total_credits, 5)
        self.assertEqual(hk1.completed_credits, 3)
        self.assertEqual(hk1.failed_credits, 2)
        self.assertEqual(hk1.completed_courses, 1)

        hk2 = summaries["HK2"]
        self.assertEqual(hk2.gpa, 0.0)
        self.assertEqual(hk2.total_credits, 4)


class CourseStatsTests(TestCase):
    def test_empty(self):
        stats = course_stats([])
        self.assertEqual(stats.total, 0)
        self.assertEqual(stats.average_grade, 0)

    def test_score_statistics(self):
        stats = course_stats(_records())
        self.assertEqual(stats.total, 4)
        self.assertEqual(stats.passed, 2)
        self.assertEqual(stats.failed, 1)
        self.assertEqual(stats.pending, 1)
        self.assertEqual(stats.highest_grade, 9.2)
        self.assertEqual(stats.lowest_grade, 3.0)
        self.assertEqual(stats.average_grade, 6.3)

    def test_status_enum_values(self):
        self.assertEqual([r.status for r in _records()][:3],
                         [GradeStatus.COMPLETED, GradeStatus.FAILED, GradeStatus.PENDING])
