import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

import app.models  # ensure models are registered
from app.core.config import settings
from app.core.exceptions import LeasingError
from app.core.logging_config import configure_logging
from app.utils.database import engine, Base, SessionLocal
from app.services.scheduler import build_default_scheduler

from app.routers import (
    customers_router,
    payments_router,
    documents_router,
    reports_router,
)

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger("car_leasing")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # DEV ONLY: tables are created on start-up, there are no migrations yet
    Base.metadata.create_all(bind=engine)

    scheduler = None
    if settings.SCHEDULER_ENABLED:
        scheduler = build_default_scheduler(SessionLocal)
        scheduler.start()

    logger.info("Car leasing backend started")
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.stop()
        engine.dispose()


app = FastAPI(title="Car Leasing Backend API", version="1.0", lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LeasingError)
async def leasing_error_handler(request: Request, exc: LeasingError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Routers
app.include_router(customers_router.router)
app.include_router(payments_router.router)
app.include_router(documents_router.router)
app.include_router(reports_router.router)

# Uploaded proofs / identity documents
Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


@app.get("/")
def root():
    return {"message": "Car Leasing Backend is running!!"}
