# 환경변수 로딩 (.env)
# 파이프라인 튜닝 값(임계치/가중치/타임아웃)도 여기서 한 번에 관리
from typing import List

from pydantic import model_validator
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"  # 필요 시 prod/staging로 분리
    MONGO_DB: str = "mealplan"
    USE_MONGO: bool = True                        # False면 메모리 캐시/빈 카탈로그로 동작

    LOG_LEVEL: str = "INFO"

    # 3rd-party 카탈로그 (Spoonacular)
    SPOONACULAR_API_KEY: str | None = None
    SPOONACULAR_BASE_URL: str = "https://api.spoonacular.com"
    SPOONACULAR_RESULTS: int = 60
    SPOONACULAR_DETAIL_CONCURRENCY: int = 4
    SPOONACULAR_RETRIES: int = 3

    # 1st-party 카탈로그
    FIRST_PARTY_COLLECTION: str = "recipes"
    FIRST_PARTY_LIMIT: int = 60

    # 어댑터별 타임아웃(초). 초과 = 실패와 동일 취급
    # 3rd-party 타임아웃에는 1st-party 제목 대기 시간도 포함되므로 1st-party 이상이어야 함
    FIRST_PARTY_TIMEOUT_S: float = 10.0
    THIRD_PARTY_TIMEOUT_S: float = 20.0

    # 캐시
    CACHE_COLLECTION: str = "candidate_cache"
    CACHE_TTL_HOURS: float = 48.0

    # 유사도 임계치
    TITLE_DUP_THRESHOLD: float = 0.9
    INGREDIENT_DUP_THRESHOLD: float = 0.7
    INGREDIENT_COMPARE_LIMIT: int = 6

    # 스코어 가중치 (합이 1일 필요는 없음, 가중 평균)
    WEIGHT_FOOD: float = 0.30
    WEIGHT_COOKING: float = 0.20
    WEIGHT_BUDGET: float = 0.15
    WEIGHT_VARIETY: float = 0.15
    WEIGHT_OVERLAP: float = 0.10
    WEIGHT_POPULARITY: float = 0.10
    ADAPTIVE_WEIGHTS: bool = True

    TIME_PENALTY: str = "linear"          # linear | exponential | stepped
    MIN_QUALIFYING_SCORE: float = 40.0

    # 다양성: 쿠이진 로테이션(재현 필요하면 시드 고정)
    CUISINE_ROTATION: bool = False
    ROTATION_CUISINES: List[str] = [
        "italian", "mexican", "chinese", "japanese", "indian", "thai",
        "korean", "mediterranean", "american", "french", "greek",
    ]
    RANDOM_SEED: int | None = None

    @model_validator(mode="after")
    def _check_timeouts(self):
        if self.THIRD_PARTY_TIMEOUT_S < self.FIRST_PARTY_TIMEOUT_S:
            raise ValueError("THIRD_PARTY_TIMEOUT_S must be >= FIRST_PARTY_TIMEOUT_S")
        return self

    class Config:
        env_file = ".env"

settings = Settings()
