# mealplan/main.py
# FastAPI 앱 초기화 및 라우터 설정
# DB가 끝내 안 붙어도 앱은 뜬다 (캐시=메모리, 1st-party=빈 결과로 저하 동작)

from __future__ import annotations
import logging
from asyncio import sleep

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mealplan.api.routes_plans import router as plans_router
from mealplan.core.config import settings
from mealplan.db.indexes import ensure_indexes
from mealplan.db.init import close_db, get_db, init_db

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("mealplan")

DB_INIT_TRIES = 20

app = FastAPI(title="Meal Plan Recommender - API", version="0.1.0")

# CORS: 프론트 localhost:3000 허용 + 쿠키 전달
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 앱 시작/종료 이벤트 핸들러
@app.on_event("startup")
async def on_startup() -> None:
    if not settings.USE_MONGO:
        log.info("[startup] USE_MONGO=false, running without database")
        return

    # 1) DB 먼저 붙는다 (최대 20회, 1초 간격)
    db = None
    for i in range(DB_INIT_TRIES):
        try:
            db = await init_db()
            log.info("[startup] db ready")
            break
        except Exception as e:
            log.warning("[startup] db init retry %d: %s", i + 1, e)
            await sleep(1.0)
    if db is None:
        log.error("[startup] db init failed after retries, continuing without database")
        return

    # 2) 인덱스 보장
    try:
        await ensure_indexes()
        log.info("[startup] indexes ensured")
    except Exception as e:
        log.warning("[startup] ensure_indexes failed: %s", e)

@app.on_event("shutdown")
async def on_shutdown() -> None:
    # 몽고db 커넥션 정리
    await close_db()

@app.get("/health")
async def health():
    ok = {"status": "ok", "db": "skip"}
    if settings.USE_MONGO:
        try:
            await get_db().command("ping")
            ok["db"] = "ok"
        except Exception as e:
            ok["db"] = f"error: {e}"
    return ok

# 라우터 prefix는 각 파일 내에서 정의함
app.include_router(plans_router)
