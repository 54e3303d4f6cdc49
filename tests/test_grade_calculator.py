from unittest import TestCase

from schemas.grades import ScoreComponent
from services.grade_calculator import (
    compute_composite,
    gpa_band,
    grade_point_for,
    letter_for,
    score_band,
    weight_for,
)

LETTER_RANK = ["F", "D", "D+", "C", "C+", "B", "B+", "A", "A+"]


class GradeCalculatorTests(TestCase):
    def test_empty_components_is_zero(self):
        self.assertEqual(compute_composite([]), 0)

    def test_single_component_weight_cancels_out(self):
        for name in ["Giữa kỳ", "Final exam", "Chuyên cần", "Lab report", ""]:
            comp = ScoreComponent(name=name, score=7.3, max_score=10)
            self.assertEqual(compute_composite([comp]), 7.3)

    def test_single_component_is_exact_for_repeating_fractions(self):
        for score in [1 / 3, 2 / 3, 0.1, 9.999]:
            comp = ScoreComponent(name="Giữa kỳ", score=score)
            self.assertEqual(compute_composite([comp]), score)

    def test_weight_classification_is_case_insensitive(self):
        self.assertEqual(weight_for("MIDTERM"), 0.30)
        self.assertEqual(weight_for("Điểm Cuối Kỳ"), 0.60)
        self.assertEqual(weight_for("Bài tập lớn"), 0.10)
        self.assertEqual(weight_for("Thuyết trình"), 0.10)

    def test_first_keyword_category_wins(self):
        # midterm 이 final 보다 먼저 검사됨
        self.assertEqual(weight_for("midterm final review"), 0.30)

    def test_vietnamese_rubric_scenario(self):
        components = [
            ScoreComponent(name="Giữa kỳ", score=8, max_score=10),
            ScoreComponent(name="Cuối kỳ", score=6, max_score=10),
            ScoreComponent(name="Điểm danh", score=10, max_score=10),
        ]
        composite = compute_composite(components)
        self.assertEqual(composite, 7.0)
        self.assertEqual(letter_for(composite), "B")
        self.assertEqual(score_band(composite), "Giỏi")

    def test_non_finite_component_counts_as_zero(self):
        components = [
            ScoreComponent(name="Giữa kỳ", score=float("nan")),
            ScoreComponent(name="Cuối kỳ", score=10),
        ]
        # (0*0.3 + 10*0.6) / 0.9
        self.assertAlmostEqual(compute_composite(components), 6 / 0.9)

    def test_letter_thresholds(self):
        cases = {
            10: "A+", 9.0: "A+", 8.99: "A", 8.5: "A", 8.0: "B+", 7.0: "B",
            6.5: "C+", 5.5: "C", 5.0: "D+", 4.0: "D", 3.99: "F", 0: "F",
        }
        for score, letter in cases.items():
            self.assertEqual(letter_for(score), letter, score)

    def test_letter_is_monotonic_and_pure(self):
        previous_rank = len(LETTER_RANK)
        score = 10.0
        while score >= 0:
            letter = letter_for(score)
            self.assertEqual(letter, letter_for(score))
            rank = LETTER_RANK.index(letter)
            self.assertLessEqual(rank, previous_rank)
            previous_rank = rank
            score = round(score - 0.05, 2)

    def test_score_band_differs_from_letter_cut_points(self):
        self.assertEqual(score_band(8.5), "Xuất sắc")
        self.assertEqual(score_band(8.4), "Giỏi")
        self.assertEqual(score_band(5.5), "Khá")
        self.assertEqual(score_band(4.0), "Trung bình")
        self.assertEqual(score_band(3.9), "Yếu")

    def test_gpa_band(self):
        self.assertEqual(gpa_band(3.6), "Xuất sắc")
        self.assertEqual(gpa_band(3.2), "Giỏi")
        self.assertEqual(gpa_band(2.5), "Khá")
        self.assertEqual(gpa_band(2.0), "Trung bình")
        self.assertEqual(gpa_band(1.99), "Yếu")

    def test_grade_points(self):
        self.assertEqual(grade_point_for("A+"), 4.0)
        self.assertEqual(grade_point_for("F"), 0.0)
        self.assertEqual(grade_point_for("?"), 0.0)
