# mealplan/db/init.py
# motor 커넥션 전역 보관 (startup/shutdown 훅과 deps에서 사용)

from __future__ import annotations
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from mealplan.core.config import settings

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None

async def init_db() -> AsyncIOMotorDatabase:
    # 이미 붙어 있으면 그대로 재사용
    global _client, _db
    if _db is not None:
        return _db

    client = AsyncIOMotorClient(settings.MONGO_URI, serverSelectionTimeoutMS=3000)
    db = client[settings.MONGO_DB]

    # 연결 확인 (준비 안 됐으면 예외, 전역은 그대로 None)
    try:
        await db.command("ping")
    except Exception:
        client.close()
        raise
    _client, _db = client, db
    return _db

def get_db() -> AsyncIOMotorDatabase:
    # health 체크 등 DB가 꼭 있어야 하는 곳
    if _db is None:
        raise RuntimeError("MongoDB is not initialized yet.")
    return _db

def get_db_or_none() -> AsyncIOMotorDatabase | None:
    # DB 없이도 파이프라인은 돌아가야 하므로 (캐시=메모리, 1st-party=빈 결과)
    return _db

async def close_db() -> None:
    # 재호출해도 안전
    global _client, _db
    client, _client, _db = _client, None, None
    if client is not None:
        client.close()
