from __future__ import annotations

import math
from fractions import Fraction
from typing import Iterable, List, Protocol, Tuple


class _Component(Protocol):
    name: str
    score: float


# 순서가 중요: 위에서부터 처음 매칭되는 분류가 이긴다
WEIGHT_KEYWORDS: List[Tuple[Tuple[str, ...], float]] = [
    (("attendance", "điểm danh", "chuyên cần"), 0.10),
    (("midterm", "giữa kỳ"), 0.30),
    (("final", "cuối kỳ"), 0.60),
    (("assignment", "bài tập"), 0.10),
]
DEFAULT_WEIGHT = 0.10

LETTER_SCALE: List[Tuple[float, str]] = [
    (9.0, "A+"),
    (8.5, "A"),
    (8.0, "B+"),
    (7.0, "B"),
    (6.5, "C+"),
    (5.5, "C"),
    (5.0, "D+"),
    (4.0, "D"),
]

# 과목 점수(0~10) 기준 등급 문구 (LETTER_SCALE 과 구간이 다름)
SCORE_BANDS: List[Tuple[float, str]] = [
    (8.5, "Xuất sắc"),
    (7.0, "Giỏi"),
    (5.5, "Khá"),
    (4.0, "Trung bình"),
]

# GPA(0~4) 기준 등급 문구
GPA_BANDS: List[Tuple[float, str]] = [
    (3.6, "Xuất sắc"),
    (3.2, "Giỏi"),
    (2.5, "Khá"),
    (2.0, "Trung bình"),
]
LOWEST_BAND = "Yếu"

GRADE_POINTS = {
    "A+": 4.0,
    "A": 3.7,
    "B+": 3.5,
    "B": 3.0,
    "C+": 2.5,
    "C": 2.0,
    "D+": 1.5,
    "D": 1.0,
    "F": 0.0,
}


def weight_for(name: str) -> float:
    lowered = (name or "").lower()
    for keywords, weight in WEIGHT_KEYWORDS:
        if any(k in lowered for k in keywords):
            return weight
    return DEFAULT_WEIGHT


def compute_composite(components: Iterable[_Component]) -> float:
    """가중 평균 점수. 구성요소가 없으면 0"""
    # 유리수로 누적하고 마지막에 한 번만 float 변환 (구성요소 1개면 점수 그대로)
    total_weighted = Fraction(0)
    total_weight = Fraction(0)
    for comp in components or []:
        weight = Fraction(str(weight_for(comp.name)))
        score = float(comp.score or 0)
        if not math.isfinite(score):
            score = 0.0
        total_weighted += Fraction(score) * weight
        total_weight += weight

    if total_weight <= 0:
        return 0.0
    return float(total_weighted / total_weight)


def _first_match(value: float, table: List[Tuple[float, str]], fallback: str) -> str:
    for threshold, label in table:
        if value >= threshold:
            return label
    return fallback


def letter_for(score: float) -> str:
    return _first_match(float(score), LETTER_SCALE, "F")


def score_band(score: float) -> str:
    return _first_match(float(score), SCORE_BANDS, LOWEST_BAND)


def gpa_band(gpa: float) -> str:
    return _first_match(float(gpa), GPA_BANDS, LOWEST_BAND)


def grade_point_for(letter: str) -> float:
    return GRADE_POINTS.get(letter, 0.0)
