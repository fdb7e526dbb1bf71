"""
Chefdesk Web - FastAPI application.

Uses Supabase Auth JWTs for authentication (see web/auth.py).
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chefdesk import __version__
from chefdesk.config import settings
from chefdesk.llm.prompt_logger import LOG_DIR, enable_prompt_logging, is_prompt_logging_enabled
from chefdesk.observability.langsmith import init_langsmith
from chefdesk.web.schedule_routes import router as schedule_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Chefdesk", version=__version__)


@app.on_event("startup")
async def startup_event():
    """Configure logging and tracing, then log the effective configuration."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if settings.chefdesk_log_prompts:
        enable_prompt_logging(True)
    tracing = init_langsmith()
    logger.info("Chefdesk starting up...")
    logger.info(f"  Environment: {settings.chefdesk_env}")
    logger.info(f"  Layout strategy: {settings.schedule_layout_strategy} ({settings.schedule_model})")
    logger.info(f"  Window: {settings.schedule_window_start}-{settings.schedule_window_end}")
    logger.info(f"  Prompt file logging: {is_prompt_logging_enabled()} ({LOG_DIR}/)")
    logger.info(f"  LangSmith tracing: {tracing}")


# CORS middleware for the frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(schedule_router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}
