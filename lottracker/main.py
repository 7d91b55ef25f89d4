# lottracker/main.py
import os
from functools import partial
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from lottracker.api.routes import router as api_router
from lottracker.scheduler import build_scheduler
from lottracker.scrape import LotFetcher
from lottracker.services import fetch_listing
from lottracker.tracking import TrackedLots
from lottracker.utils import logger

STATIC_DIR = os.getenv("STATIC_DIR")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


def create_app(fetcher: Optional[LotFetcher] = None, tracked: Optional[TrackedLots] = None,
               static_dir: Optional[str] = STATIC_DIR) -> FastAPI:
    app = FastAPI(title="Lot Tracker")
    app.state.fetcher = fetcher if fetcher is not None else LotFetcher()
    if tracked is None:
        tracked = TrackedLots(partial(fetch_listing, app.state.fetcher))
    app.state.tracked = tracked
    app.state.scheduler = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router)

    # mounted last so API routes win
    if static_dir:
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")

    @app.on_event("startup")
    def on_startup_start_scheduler():
        scheduler = build_scheduler(app.state.tracked)
        if scheduler is not None:
            scheduler.start()
            app.state.scheduler = scheduler

    @app.on_event("shutdown")
    async def on_shutdown_close_browser():
        if app.state.scheduler is not None:
            app.state.scheduler.shutdown(wait=False)
        await app.state.fetcher.close()
        logger.info("Browser closed")

    return app


app = create_app()
