# mealplan/models/tags.py
# 태그 정규화: 식사 유형 동의어 / 식단 태그 표기 교정 / 알레르겐 계열 확장
from typing import Dict, Iterable, List, Optional, Set
import re

# === 식사 유형 =================================================================
MEAL_TYPES = ["breakfast", "lunch", "dinner", "snacks"]

_MEAL_TYPE_SYNONYMS = {
    "breakfast": "breakfast", "brunch": "breakfast", "morning": "breakfast", "morning meal": "breakfast",
    "lunch": "lunch", "main course": "lunch", "main dish": "lunch", "midday": "lunch",
    "dinner": "dinner", "supper": "dinner", "evening": "dinner",
    "snack": "snacks", "snacks": "snacks", "appetizer": "snacks", "side dish": "snacks",
    "finger food": "snacks", "dessert": "snacks",
}

# 제목으로 식사 유형 추정 (태그가 아예 없을 때만)
_TITLE_HINTS = [
    (re.compile(r"(breakfast|pancake|omelet|cereal)", re.I), "breakfast"),
    (re.compile(r"(lunch|sandwich|salad|wrap)", re.I), "lunch"),
    (re.compile(r"(dinner|supper|roast|steak|pasta)", re.I), "dinner"),
    (re.compile(r"(snack|cookie|brownie|bar|bites)", re.I), "snacks"),
]

def canonical_meal_type(raw: str) -> Optional[str]:
    """식사 유형 동의어를 표준 라벨로. 해당 없으면 None."""
    return _MEAL_TYPE_SYNONYMS.get((raw or "").strip().lower())

def meal_type_from_title(title: str) -> Optional[str]:
    for rx, label in _TITLE_HINTS:
        if rx.search(title or ""):
            return label
    return None

# === 식단 태그 =================================================================
_DIET_FIXES = [
    (re.compile(r"^veg[aei]t[aei]ri?an$"), "vegetarian"),   # vegatarian, vegeterian 등
    (re.compile(r"^vegan$"), "vegan"),
    (re.compile(r"gluten[-_ ]?free$"), "gluten-free"),
    (re.compile(r"dairy[-_ ]?free$"), "dairy-free"),
    (re.compile(r"^low[-_ ]?carb$"), "low-carb"),
    (re.compile(r"^nut[-_ ]?free$"), "nut-free"),
]

def normalize_tag(raw: str) -> str:
    t = (raw or "").strip().lower()
    for rx, label in _DIET_FIXES:
        if rx.search(t):
            return label
    return re.sub(r"\s+", "-", t)

def normalize_tags(raws: Iterable[str], title: str = "", meal_type: Optional[str] = None) -> List[str]:
    """
    태그 목록 정규화.
    - 소문자/하이픈화, 식사 유형 동의어 치환, 중복 제거(순서 보존)
    - 명시 meal_type이 있으면 주입, 그래도 없으면 제목으로 추정
    - 대표 식사 유형 태그는 맨 앞
    """
    tags: List[str] = []
    for r in raws or []:
        if not isinstance(r, str) or not r.strip():
            continue
        t = canonical_meal_type(r) or normalize_tag(r)
        if t == "lacto-ovo-vegetarian":
            tags.extend([t, "vegetarian"])
        else:
            tags.append(t)

    if meal_type:
        mt = canonical_meal_type(meal_type) or meal_type.strip().lower()
        if mt not in tags:
            tags.insert(0, mt)

    if not any(t in MEAL_TYPES for t in tags):
        guessed = meal_type_from_title(title)
        if guessed:
            tags.insert(0, guessed)

    tags = list(dict.fromkeys(tags))
    primary = next((t for t in tags if t in MEAL_TYPES), None)
    if primary:
        tags = [primary] + [t for t in tags if t != primary]
    return tags

def primary_meal_type(tags: Iterable[str]) -> Optional[str]:
    return next((t for t in tags if t in MEAL_TYPES), None)

# === 식단 플래그 → 허용 태그 ===================================================
DIET_FLAG_TAGS: Dict[str, Set[str]] = {
    "vegetarian": {"vegetarian", "vegan", "lacto-vegetarian", "ovo-vegetarian", "lacto-ovo-vegetarian"},
    "vegan": {"vegan"},
    "gluten_free": {"gluten-free"},
    "dairy_free": {"dairy-free", "vegan"},
    "low_carb": {"low-carb", "ketogenic", "keto"},
}
LOW_CARB_MAX_GRAMS = 30.0

# === 알레르겐 계열 ==============================================================
# 사용자가 "shellfish"라고 쓰면 재료명에는 "shrimp"로 나오므로 계열로 확장
ALLERGEN_FAMILIES: Dict[str, List[str]] = {
    "shellfish": ["shellfish", "shrimp", "prawn", "crab", "lobster", "crawfish", "crayfish",
                  "scallop", "clam", "mussel", "oyster", "langoustine"],
    "fish": ["fish", "salmon", "tuna", "cod", "tilapia", "halibut", "anchov", "sardine", "trout", "mackerel"],
    "nuts": ["nut", "almond", "cashew", "pecan", "walnut", "hazelnut", "pistachio", "macadamia", "peanut"],
    "peanut": ["peanut"],
    "tree nut": ["almond", "cashew", "pecan", "walnut", "hazelnut", "pistachio", "macadamia", "brazil nut"],
    "dairy": ["milk", "cheese", "butter", "cream", "yogurt", "yoghurt", "parmesan", "mozzarella", "ghee", "whey"],
    "egg": ["egg", "mayonnaise"],
    "gluten": ["wheat", "flour", "bread", "pasta", "barley", "rye", "couscous", "bulgur", "semolina", "seitan"],
    "wheat": ["wheat", "flour", "semolina", "couscous", "bulgur"],
    "soy": ["soy", "tofu", "edamame", "tempeh", "miso"],
    "sesame": ["sesame", "tahini"],
}
_ALLERGEN_ALIASES = {
    "nut": "nuts", "tree nuts": "tree nut", "peanuts": "peanut", "eggs": "egg",
    "milk": "dairy", "lactose": "dairy", "seafood": "shellfish", "soya": "soy",
}
NUT_KEYWORDS = ALLERGEN_FAMILIES["nuts"]
# 키워드를 포함하지만 해당 알레르겐이 아닌 재료명
FALSE_FRIENDS = ("nutmeg", "butternut", "coconut", "doughnut", "donut", "nutritional yeast",
                 "eggplant", "cream of tartar")

# "no pork", "avoid nuts" 같은 제한 문구
_NEGATION_RE = re.compile(r"^(no|without|avoid|avoids)\s+")

def expand_allergens(items: Iterable[str]) -> List[str]:
    """알레르기/제한 문자열 → 재료명 부분일치용 키워드 목록(소문자, 중복 제거)."""
    out: List[str] = []
    for raw in items or []:
        s = _NEGATION_RE.sub("", (raw or "").strip().lower())
        if not s:
            continue
        key = _ALLERGEN_ALIASES.get(s, s)
        out.append(s)
        out.extend(ALLERGEN_FAMILIES.get(key, []))
    return list(dict.fromkeys(out))

def ingredient_mentions(name: str, keyword: str) -> bool:
    """재료명이 키워드를 포함하는지(대소문자 무시). 'nut' vs 'nutmeg' 같은 오탐은 제외."""
    s = (name or "").lower()
    k = (keyword or "").strip().lower()
    if not k:
        return False
    for ff in FALSE_FRIENDS:
        if k in ff and k != ff:
            s = s.replace(ff, " ")
    return k in s

def mentions_nut(name: str) -> bool:
    return any(ingredient_mentions(name, k) for k in NUT_KEYWORDS)
