from __future__ import annotations

import logging

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might need env vars
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes.spreadsheets import router as spreadsheets_router
from middleware.rate_limit import RateLimitMiddleware
from services.db import init_db
from services.performance import PerformanceMonitor
from services.settings import get_settings


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Spreadsheet Editor")

    # One monitor for the whole process, shared by every editing session
    app.state.performance_monitor = PerformanceMonitor()

    # Rate limiting (can be disabled in dev with DISABLE_RATE_LIMIT=1)
    if settings.rate_limit.enabled:
        app.add_middleware(RateLimitMiddleware, config=settings.rate_limit)

    # Allow any origin in local dev mode.
    # This should be tightened for production.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Ensure DB schema exists
    init_db(settings.database_url)

    app.include_router(spreadsheets_router)

    @app.get("/")
    async def root():
        return {"status": "ok"}

    return app


app = create_app()
