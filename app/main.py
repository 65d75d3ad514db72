import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# ✅ Import API Routes
from app.api.routes import role_play, system

from app.core import config
from app.core.config import LOG_LEVEL, SESSION_STORE_BACKEND
from app.core.logging_config import sanitize_log_data, setup_logging
from app.db.init_db import init_db
from app.db.session import SessionLocal
from app.llm.openai_provider import OpenAIProvider
from app.services.session_store import InMemorySessionStore, SqlSessionStore

logger = logging.getLogger(__name__)


# ============================================
# ✅ STARTUP: STORE + LLM PROVIDER
# ============================================

def startup_settings() -> dict:
    """Effective configuration, redacted for the startup log."""
    return sanitize_log_data({
        "database_url": config.DATABASE_URL,
        "openai_api_key": config.OPENAI_API_KEY,
        "openai_model": config.OPENAI_MODEL,
        "session_ttl_seconds": config.SESSION_TTL_SECONDS,
        "compression_threshold": config.COMPRESSION_THRESHOLD,
        "session_store": config.SESSION_STORE_BACKEND,
    })


def build_session_store():
    if SESSION_STORE_BACKEND == "memory":
        logger.info("Using in-memory session store (single worker only)")
        return InMemorySessionStore()
    init_db()
    return SqlSessionStore(SessionLocal)


def build_llm_provider():
    try:
        return OpenAIProvider()
    except ValueError:
        logger.warning("OpenAI provider not available - role-play endpoints disabled")
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(LOG_LEVEL)
    logger.info(f"Starting with settings: {startup_settings()}")
    app.state.session_store = build_session_store()
    app.state.llm_provider = build_llm_provider()
    logger.info("Role-Play Interview API started")
    yield


# ============================================
# ✅ FASTAPI APP INIT
# ============================================

app = FastAPI(title="Role-Play Interview API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",      # local frontend
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type", "X-User-Id"],
)


# ============================================
# ✅ REGISTER ALL ROUTERS
# ============================================

app.include_router(role_play.router)
app.include_router(system.router)


# ============================================
# ✅ HEALTH CHECK ROOT ENDPOINT
# ============================================

@app.get("/")
def root():
    return {"status": "Role-Play Interview API running"}
