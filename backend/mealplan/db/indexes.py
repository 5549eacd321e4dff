# 컬렉션 인덱스 생성
# 앱 스타트업에서 한 번 ensure_indexes()를 await로 호출한다.

from mealplan.core.config import settings
from mealplan.db.init import get_db
from mealplan.services.collaborators import HISTORY_COLLECTION, PREFS_COLLECTION

async def ensure_indexes():
    db = get_db()

    # 1st-party 카탈로그: 최신순 조회
    await db[settings.FIRST_PARTY_COLLECTION].create_index([("updatedAt", -1)])
    await db[settings.FIRST_PARTY_COLLECTION].create_index([("createdAt", -1)])
    await db[settings.FIRST_PARTY_COLLECTION].create_index("tags")

    # 후보 캐시: _id = 키, TTL 판정은 읽을 때. 오래된 문서 청소용 TTL 인덱스는 여유를 두고
    await db[settings.CACHE_COLLECTION].create_index(
        "timestamp", expireAfterSeconds=int(settings.CACHE_TTL_HOURS * 3600 * 2)
    )

    # 협력자 컬렉션 (읽기 전용이지만 조회 패턴에 맞춰 인덱스만 보장)
    await db[PREFS_COLLECTION].create_index("anon_id", unique=True)
    await db[HISTORY_COLLECTION].create_index([("anon_id", 1), ("usedDate", -1)])
