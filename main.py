from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from starlette.middleware.base import BaseHTTPMiddleware
import asyncio
import os
import sys

import httpx
import uvicorn
from dotenv import load_dotenv

from app.account.api.route import account_router
from app.account.service.account_service import AccountService
from app.chat.api.route import session_router
from app.chat.service.chat_client import ChatClient
from app.chat.service.session_service import ChatSessionService
from app.core.config import settings
from app.core.exception_handlers import register_exception_handlers
from app.core.logger import get_logger
from app.knowledge.api.route import knowledge_router
from app.knowledge.service.knowledge_service import KnowledgeService
from app.llm.api.handler import LLMHandler
from app.llm.api.route import chat_router, llm_router
from app.llm.service.llm_service import LLMService
from app.llm.service.provider.factory import build_providers
from app.llm.service.router_service import FallbackRouter
from app.store.local_store import InMemoryStateStore, RedisStateStore
from app.sync.repository.sync_repository import SyncRepository
from app.sync.service.sync_service import SyncService
from pkg.db_util.postgres_conn import PostgresConnection
from pkg.db_util.types import PostgresConfig
from pkg.redis.client import RedisClient
from pkg.redis.upstash_client import UpstashRedisClient

# App & Logger Setup
# Load .env so os.getenv picks up values from your .env file
load_dotenv()

logger = get_logger("business-mind")

SERVICE_NAME = "business-mind"
MASKED_ENV_VARS = [
    "GEMINI_API_KEY", "API_KEY", "GROQ_API_KEY", "OPENAI_API_KEY", "DEEPSEEK_API_KEY", "ANTHROPIC_API_KEY",
    "FALLBACK_CANDIDATES", "PROXY_URL", "POSTGRES_HOST", "POSTGRES_USER", "POSTGRES_PASSWORD",
    "REDIS_HOST", "UPSTASH_REDIS_REST_URL", "UPSTASH_REDIS_REST_TOKEN",
]


def log_environment() -> None:
    logger.info("=== Environment Variables Check ===")
    for var in MASKED_ENV_VARS:
        value = os.getenv(var)
        if not value:
            logger.info(f"{var}: not set")
        elif any(marker in var for marker in ("KEY", "PASSWORD", "TOKEN", "SECRET")):
            logger.info(f"{var}: ***MASKED*** (length: {len(value)})")
        else:
            logger.info(f"{var}: {value}")
    logger.info("===================================")


def build_chat_proxy() -> LLMHandler:
    providers = build_providers(settings)
    router = FallbackRouter(
        providers=providers,
        candidates=settings.fallback_candidates(),
        abort_on_rate_limit=settings.ABORT_ON_RATE_LIMIT,
        candidate_timeout_ms=settings.CANDIDATE_TIMEOUT_MS,
    )
    credentials = {
        "gemini": settings.GEMINI_API_KEY,
        "openai": settings.OPENAI_API_KEY,
        "groq": settings.GROQ_API_KEY,
        "deepseek": settings.DEEPSEEK_API_KEY,
        "anthropic": settings.ANTHROPIC_API_KEY,
    }
    llm_service = LLMService(router, diag_candidates=settings.diag_candidates(), credentials=credentials)
    logger.info(f"Chat proxy ready: {router!r}")
    if not router.has_credentials():
        logger.warning("No credential configured for any fallback candidate; /chat will answer 500")
    return LLMHandler(llm_service)


async def build_local_store():
    """Upstash REST, then plain Redis, then process memory. Returns (store, client)."""
    if settings.UPSTASH_REDIS_REST_URL and settings.UPSTASH_REDIS_REST_TOKEN:
        logger.info("Using Upstash Redis REST API for local state...")
        client = UpstashRedisClient(logger, url=settings.UPSTASH_REDIS_REST_URL, token=settings.UPSTASH_REDIS_REST_TOKEN)
        if not await client.ping():
            raise ConnectionError("Failed to ping Upstash Redis")
        return RedisStateStore(client, settings.STATE_NAMESPACE), client
    if settings.REDIS_HOST:
        redis_ssl = os.getenv("REDIS_SSL", "false").lower() == "true"
        logger.info(f"Using Redis at {settings.REDIS_HOST}:{settings.REDIS_PORT} for local state")
        client = RedisClient(
            logger,
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            password=settings.REDIS_PASSWORD or None,
            ssl=redis_ssl,
        )
        return RedisStateStore(client, settings.STATE_NAMESPACE), client
    logger.warning("No Redis configured; local state is kept in process memory")
    return InMemoryStateStore(), None


async def build_remote_sync():
    """Postgres-backed sync repository, or None when sync is off or unreachable."""
    if not settings.SYNC_ENABLED:
        logger.info("Remote sync disabled (SYNC_ENABLED=false)")
        return None, None
    if not settings.postgres_configured():
        logger.warning("POSTGRES_HOST/USER/PASSWORD not set; remote sync disabled")
        return None, None

    postgres_config = PostgresConfig(
        host=settings.POSTGRES_HOST.strip(),
        port=settings.POSTGRES_PORT,
        username=settings.POSTGRES_USER.strip(),
        password=settings.POSTGRES_PASSWORD.strip(),
        database=settings.POSTGRES_DB,
    )
    postgres_conn = PostgresConnection(postgres_config, logger)
    try:
        await asyncio.wait_for(postgres_conn.get_engine(max_retries=3, initial_delay=2.0), timeout=60.0)
        logger.info("✓ Postgres engine initialized and cached during startup.")
    except (asyncio.TimeoutError, ConnectionError) as e:
        logger.error(f"Database unavailable, remote sync disabled: {e}")
        return None, None
    # Tables: brains, knowledge, sessions (see scripts/create_tables.py)
    return SyncRepository(postgres_conn.get_session, logger), postgres_conn


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager - ensures startup completes before accepting requests"""
    logger.info("Business Mind starting up...")
    logger.info(f"Python: {sys.version}")
    log_environment()

    app.state.logger = logger
    app.state.startup_complete = False
    app.state.startup_error = None
    redis_client = None
    postgres_conn = None

    try:
        app.state.llm_handler = build_chat_proxy()

        try:
            store, redis_client = await build_local_store()
        except Exception as e:
            logger.error(f"Local state store unavailable ({e}); falling back to process memory")
            store, redis_client = InMemoryStateStore(), None

        remote, postgres_conn = await build_remote_sync()
        sync_service = SyncService(remote, logger)

        if settings.PROXY_URL:
            http_client = httpx.AsyncClient(base_url=settings.PROXY_URL.rstrip("/"), timeout=settings.PROXY_TIMEOUT_S)
        else:
            # Same process: talk to our own /chat without a network hop.
            http_client = httpx.AsyncClient(
                transport=httpx.ASGITransport(app=app),
                base_url="http://business-mind",
                timeout=settings.PROXY_TIMEOUT_S,
            )
        chat_client = ChatClient(http_client, logger)

        knowledge_service = KnowledgeService(store, sync_service, logger)
        session_service = ChatSessionService(store, knowledge_service, chat_client, sync_service, logger)
        account_service = AccountService(remote, store, sync_service, knowledge_service, session_service, logger)

        if await account_service.verify_stored():
            logger.info(f"Restored session for account {account_service.authorized_account}")

        app.state.local_store = store
        app.state.redis_client = redis_client
        app.state.postgres_conn = postgres_conn
        app.state.sync_service = sync_service
        app.state.chat_client = chat_client
        app.state.knowledge_service = knowledge_service
        app.state.session_service = session_service
        app.state.account_service = account_service
        app.state.startup_complete = True

        logger.info("✓ Startup complete - application is ready!")

    except Exception as e:
        logger.error(f"✗ Startup failed: {e}", exc_info=True)
        logger.error("Application will start in degraded mode - check logs above")
        app.state.startup_error = str(e)

    yield

    logger.info("Business Mind shutting down...")
    sync_service = getattr(app.state, "sync_service", None)
    if sync_service is not None:
        await sync_service.wait_for_pending()
    chat_client = getattr(app.state, "chat_client", None)
    if chat_client is not None:
        await chat_client.aclose()
    llm_handler = getattr(app.state, "llm_handler", None)
    if llm_handler is not None:
        await llm_handler.router.aclose()
    if redis_client is not None:
        await redis_client.async_close()
    if postgres_conn is not None:
        await postgres_conn.close_engine()


app = FastAPI(
    title="Business Mind",
    description="Personal business assistant with a multi-provider chat proxy",
    version="1.0.0",
    lifespan=lifespan
)


# Startup Check Middleware - ensures no requests processed before startup completes
class StartupCheckMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.url.path in ["/health", "/", "/docs", "/openapi.json"]:
            return await call_next(request)

        if not getattr(request.app.state, "startup_complete", False):
            startup_error = getattr(request.app.state, "startup_error", None)
            message = (
                f"Service initialization failed: {startup_error}"
                if startup_error
                else "Service is starting up. Please retry in a few seconds."
            )
            return JSONResponse(status_code=503, content={"error": message})

        return await call_next(request)


app.add_middleware(StartupCheckMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # adjust in prod
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Routers
app.include_router(chat_router)
app.include_router(llm_router)
app.include_router(session_router)
app.include_router(knowledge_router)
app.include_router(account_router)


@app.get("/health")
async def health():
    """Health check that shows service status"""
    startup_complete = getattr(app.state, "startup_complete", False)
    startup_error = getattr(app.state, "startup_error", None)

    # Return 200 for platform health checks even during startup
    if not startup_complete:
        return JSONResponse(
            status_code=200,
            content={
                "status": "starting" if startup_error is None else "degraded",
                "service": SERVICE_NAME,
                "message": startup_error or "Application is still starting up...",
                "startup_complete": False
            }
        )

    llm_handler = app.state.llm_handler
    sync_service = app.state.sync_service
    checks = {
        "chat_proxy": "✓ ready" if llm_handler.router.has_credentials() else "✗ no_credentials",
        "local_store": "✓ redis" if app.state.redis_client is not None else "✓ memory",
        "remote_sync": "✓ connected" if sync_service.enabled else "✗ disabled",
        "account": app.state.account_service.authorized_account or "not_authorized",
    }
    return {
        "status": "ok" if llm_handler.router.has_credentials() else "degraded",
        "service": SERVICE_NAME,
        "checks": checks,
        "startup_complete": True
    }


@app.get("/")
async def root():
    """Root endpoint - simple check that app is running"""
    return {
        "service": SERVICE_NAME,
        "version": "1.0.0",
        "status": "running",
        "health_check": "/health"
    }


if __name__ == "__main__":
    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
