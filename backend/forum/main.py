# forum/main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from forum.config import settings
from forum.core.db import init_db, close_db
from forum.core.errors import register_exception_handlers
from forum.core.pubsub import attach_log_channel
from forum.core.bootstrap import ensure_default_admin

from forum.api.v1.routers import auth, posts, users, categories, debug

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# CORS (bearer tokens, no cookies)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

@app.on_event("startup")
async def on_startup():
    # Feed the debug log viewer before anything else logs
    attach_log_channel()
    await init_db()
    # Ensure there's a default admin account on first run
    await ensure_default_admin()
    logger.info("[startup] %s ready (env=%s)", settings.APP_NAME, settings.env)

@app.on_event("shutdown")
async def on_shutdown():
    await close_db()

# REST
app.include_router(auth.router, prefix="/api/v1")
app.include_router(posts.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")
app.include_router(categories.router, prefix="/api/v1")
app.include_router(debug.router, prefix="/api/v1")

# WebSocket
app.include_router(debug.ws_router)

@app.get("/healthz")
def healthz():
    return {"ok": True}
