"""FastAPI server for the Blog Agent Chat service.

Run with:
    uv run uvicorn src.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.routes import router
from src.config import CORS_ORIGINS, DATABASE_URL, SERVER_HOST, SERVER_PORT, SQL_ECHO
from src.db.session import create_db_engine, init_db, make_session_factory
from src.errors import NotFoundError, StoreError, UpstreamGenerationError, ValidationError
from src.services.chat_service import ChatService
from src.services.entity_store import EntityStore
from src.services.message_store import MessageStore

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Start-up: connect the database, create tables, build the chat service."""
    logger.info("Connecting to database…")
    engine = create_db_engine(DATABASE_URL, echo=SQL_ECHO)
    init_db(engine)
    session_factory = make_session_factory(engine)

    entity_store = EntityStore(session_factory)
    application.state.entity_store = entity_store
    application.state.chat_service = ChatService(MessageStore(session_factory), entity_store)
    logger.info("Chat service ready.")
    yield
    application.state.chat_service = None
    application.state.entity_store = None
    engine.dispose()


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Blog Agent Chat",
    description=(
        "Chat with an AI assistant that can create and browse blog users "
        "and posts. Every turn is persisted."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS (needed for the chat frontend) ─────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a unique request ID to every request for log correlation."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info(
        "[%s] %s %s", request_id, request.method, request.url.path,
    )
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Error mapping ────────────────────────────────────────────────────
@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(StoreError)
async def _store_error(request: Request, exc: StoreError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(UpstreamGenerationError)
async def _upstream_error(request: Request, exc: UpstreamGenerationError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "?")
    logger.error("[%s] Upstream generation failed: %s", request_id, exc)
    return JSONResponse(
        status_code=502,
        content={"detail": "The assistant could not generate a reply. Please try again."},
    )


# ── Register routes ──────────────────────────────────────────────────
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Blog Agent Chat",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
    }


# ── CLI entry point ──────────────────────────────────────────────────

if __name__ == "__main__":
    logger.info("Starting Blog Agent Chat server on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "src.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )
