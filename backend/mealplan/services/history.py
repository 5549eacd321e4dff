# mealplan/services/history.py
# 레시피 사용 이력 헬퍼 (읽기 전용)
from __future__ import annotations
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from mealplan.models.preferences import RecipeHistoryItem

RECENCY_WINDOW_DAYS = 30
PENALTY_PER_USE = 10

def _aware(ts: datetime) -> datetime:
    # naive 값은 UTC로 간주
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)

def variety_penalty(recipe_id: str, history: Iterable[RecipeHistoryItem], now: Optional[datetime] = None) -> float:
    """
    최근성 + 빈도 감점 (0~100).
    - 최근성: max(0, 30 - 마지막 사용 후 경과일)
    - 빈도: 사용 횟수 × 10
    이력에 없으면 0.
    """
    uses: List[datetime] = [_aware(h.used_date) for h in history or [] if h.recipe_id == recipe_id]
    if not uses:
        return 0.0
    now = _aware(now or datetime.now(timezone.utc))
    days = max(0.0, (now - max(uses)).total_seconds() / 86400.0)
    recency = max(0.0, RECENCY_WINDOW_DAYS - days)
    return min(100.0, recency + PENALTY_PER_USE * len(uses))
