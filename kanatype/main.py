#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Main FastAPI application entry point. Configures the app, middleware, database connections, and routes.

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# lifespan: Async context manager for application startup (db connection, word list) and shutdown.
# SecurityHeadersMiddleware.dispatch: Middleware to add security headers (X-Content-Type-Options, etc.) to responses.
# RequestIDMiddleware.dispatch: Middleware to generate and attach a unique X-Request-ID to every request.
# root: Simple health check endpoint returning status ok.
# health: Health check for the database and the session store.

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# app: The main FastAPI application instance.
# logger: Logger instance for this module.
# settings: Application settings loaded from config.
# SecurityHeadersMiddleware: Custom middleware class for security headers.
# RequestIDMiddleware: Custom middleware class for request tracing.

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# fastapi: Web framework.
# fastapi.middleware.cors: Middleware for handling CORS.
# contextlib.asynccontextmanager: Decorator for lifespan.
# logging: standard logging library.
# uuid: For generating unique request IDs.
# kanatype.config.get_settings: Helper to load settings.
# kanatype.database.Database: Database connection manager.
# kanatype.services.sessions.get_session_manager: Session manager (store health).
# kanatype.utils.words.get_official_pool: Official word pool, loaded at startup.
# uvicorn: ASGI server when run as a script.
# kanatype.routers: Module containing API route definitions.
# starlette.middleware.base.BaseHTTPMiddleware: Base class for custom middleware.
# starlette.requests.Request: Type hinting for requests.

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from kanatype import __version__
from kanatype.config import get_settings
from kanatype.database import Database
from kanatype.services.sessions import get_session_manager
from kanatype.utils.words import get_official_pool
from kanatype.routers import game, words, rankings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Kanatype Backend starting...")

    pool = get_official_pool()
    logger.info(f"Official pool ready: {len(pool)} playable words")

    await Database.connect()

    sessions = get_session_manager()
    if not await sessions.store.ping():
        logger.warning(f"Session store ({get_settings().session_backend}) is not reachable")

    yield

    await Database.disconnect()
    logger.info("Kanatype Backend shutting down...")


app = FastAPI(
    title="kanatype",
    description="Kana typing game API with replay-verified scores",
    version=__version__,
    lifespan=lifespan,
)

settings = get_settings()
logger.info(f"Configuring CORS for origins: {settings.cors_origins_list}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["*"],
    max_age=3600,
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIDMiddleware)

app.include_router(game.router, prefix="/api/game", tags=["Game"])
app.include_router(words.router, prefix="/api/words", tags=["Words"])
app.include_router(rankings.router, prefix="/api/rankings", tags=["Rankings"])


@app.get("/")
async def root():
    return {"status": "ok", "service": "kanatype"}


@app.get("/health")
async def health():
    db_healthy = await Database.check_health()
    sessions_healthy = await get_session_manager().store.ping()

    status = "healthy" if db_healthy and sessions_healthy else "degraded"

    return {
        "status": status,
        "version": __version__,
        "services": {
            "database": "connected" if db_healthy else "disconnected",
            "sessions": "connected" if sessions_healthy else "disconnected",
        },
        "session_backend": get_settings().session_backend,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("kanatype.main:app", host=settings.backend_host, port=settings.backend_port)
