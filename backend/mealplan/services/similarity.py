# mealplan/services/similarity.py
# 후보 중복 제거용 퍼지 유사도 (순수 함수, 상태 없음)
# - 제목: 정규화 레벤슈타인
# - 재료: 문자 bigram 집합의 Jaccard

from __future__ import annotations
import re
from typing import Iterable, Set

from mealplan.core.config import settings
from mealplan.models.recipe import UnifiedRecipe

def levenshtein(a: str, b: str) -> int:
    """대소문자 무시 편집 거리. 행 두 개만 유지."""
    a = (a or "").lower()
    b = (b or "").lower()
    if len(a) < len(b):
        a, b = b, a
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        cur = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                cur.append(prev[j - 1])
            else:
                cur.append(min(prev[j] + 1, cur[j - 1] + 1, prev[j - 1] + 1))
        prev = cur
    return prev[-1]

def title_similarity(a: str, b: str) -> float:
    """1 - 편집거리/긴 쪽 길이. 둘 다 빈 문자열이면 1."""
    max_len = max(len(a or ""), len(b or ""))
    if max_len == 0:
        return 1.0
    return (max_len - levenshtein(a, b)) / max_len

def _bigrams(s: str) -> Set[str]:
    s = (s or "").lower()
    return {s[i:i + 2] for i in range(len(s) - 1)}

def bigram_jaccard(list_a: Iterable[str], list_b: Iterable[str]) -> float:
    """두 문자열 목록의 bigram 집합 Jaccard. 합집합이 비면 0."""
    set_a: Set[str] = set()
    set_b: Set[str] = set()
    for s in list_a or []:
        set_a |= _bigrams(s)
    for s in list_b or []:
        set_b |= _bigrams(s)
    union = len(set_a | set_b)
    if union == 0:
        return 0.0
    return len(set_a & set_b) / union

# 제목 비교 시 무시하는 군더더기 단어
_FILLER_RE = re.compile(r"\b(recipes?|easy|simple|homemade|best|the|classic|quick)\b", re.I)

def core_title(title: str) -> str:
    return re.sub(r"\s+", " ", _FILLER_RE.sub(" ", title or "")).strip()

def titles_match(a: str, b: str, threshold: float | None = None) -> bool:
    """원문 제목 또는 군더더기 제거 제목의 유사도가 임계치 초과면 같은 레시피."""
    threshold = settings.TITLE_DUP_THRESHOLD if threshold is None else threshold
    if title_similarity(a, b) > threshold:
        return True
    ca, cb = core_title(a), core_title(b)
    return bool(ca and cb) and title_similarity(ca, cb) > threshold

def is_near_duplicate(
    a: UnifiedRecipe,
    b: UnifiedRecipe,
    title_threshold: float | None = None,
    ingredient_threshold: float | None = None,
    ingredient_limit: int | None = None,
) -> bool:
    # 제목이 거의 같거나, 앞쪽 재료 구성이 거의 같으면 같은 레시피로 본다
    ingredient_threshold = settings.INGREDIENT_DUP_THRESHOLD if ingredient_threshold is None else ingredient_threshold
    limit = settings.INGREDIENT_COMPARE_LIMIT if ingredient_limit is None else ingredient_limit

    if titles_match(a.title, b.title, title_threshold):
        return True
    return bigram_jaccard(a.ingredient_names(limit), b.ingredient_names(limit)) > ingredient_threshold
