# mealplan/services/timing.py
# 조리 시간 구간(band) + 패널티 함수
# - 구간은 순서 있는 목록으로 설정 가능, 범위를 벗어나면 가장 가까운 끝 구간으로 클램프
# - 구간 중앙(ideal)만 100점, 경계는 항상 100 미만
from __future__ import annotations
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from mealplan.core.config import settings

class TimeRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: int
    max: int
    label: str
    description: str = ""

    @property
    def ideal(self) -> float:
        return (self.min + self.max) / 2.0

    def contains(self, minutes: float) -> bool:
        return self.min <= minutes <= self.max

DEFAULT_TIME_RANGES: List[TimeRange] = [
    TimeRange(min=0, max=30, label="quick", description="Quick meals (30 minutes or less)"),
    TimeRange(min=31, max=60, label="medium", description="Medium length meals (31-60 minutes)"),
    TimeRange(min=61, max=180, label="long", description="Long cooking time (over an hour)"),
]

# 선호 조리 시간(설문 값) → 구간 라벨
DURATION_TO_BAND: Dict[str, str] = {
    "under_30_min": "quick",
    "30_to_60_min": "medium",
    "over_60_min": "long",
}

BAND_MISMATCH_PENALTY = 25.0

def _linear(distance: float) -> float:
    return min(100.0, distance * 2.0)

def _exponential(distance: float) -> float:
    return min(100.0, distance * distance / 25.0)

def _stepped(distance: float) -> float:
    if distance <= 0:
        return 0.0
    if distance <= 10:
        return 20.0
    if distance <= 20:
        return 40.0
    if distance <= 40:
        return 60.0
    if distance <= 60:
        return 80.0
    return 100.0

# 거리(분) → 감점
PENALTY_FUNCTIONS: Dict[str, Callable[[float], float]] = {
    "linear": _linear,
    "exponential": _exponential,
    "stepped": _stepped,
}

def clamp(v: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, v))

def get_time_range(minutes: float, ranges: Sequence[TimeRange] = DEFAULT_TIME_RANGES) -> TimeRange:
    if minutes < ranges[0].min:
        return ranges[0]
    for r in ranges:
        if r.contains(minutes):
            return r
    # 구간 사이 틈(예: 30.5분)이나 마지막 구간 초과 → 가장 가까운 구간
    if minutes > ranges[-1].max:
        return ranges[-1]
    return min(ranges, key=lambda r: min(abs(minutes - r.min), abs(minutes - r.max)))

def band_index(label: str, ranges: Sequence[TimeRange] = DEFAULT_TIME_RANGES) -> Optional[int]:
    for i, r in enumerate(ranges):
        if r.label == label:
            return i
    return None

def preferred_band(duration: Optional[str]) -> Optional[str]:
    return DURATION_TO_BAND.get(duration or "")

def time_score(
    minutes: float,
    preferred: Optional[str] = None,
    ranges: Sequence[TimeRange] = DEFAULT_TIME_RANGES,
    penalty: Optional[str] = None,
) -> float:
    """
    구간 내 이상점과의 거리로 0~100 점수.
    preferred(구간 라벨)가 있으면 구간 차이 1칸당 25점 감점.
    """
    fn = PENALTY_FUNCTIONS[penalty or settings.TIME_PENALTY]
    band = get_time_range(minutes, ranges)
    score = 100.0 - fn(abs(minutes - band.ideal))
    if preferred:
        want = band_index(preferred, ranges)
        got = band_index(band.label, ranges)
        if want is not None and got is not None:
            score -= BAND_MISMATCH_PENALTY * abs(want - got)
    return clamp(score)
