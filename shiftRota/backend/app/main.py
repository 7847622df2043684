import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.db.database import Base, engine
from app.db import models  # noqa: F401  registers every table on Base
from app.api.routes import (
    auth,
    users,
    availability,
    schedule,
    chat_rooms,
    notifications,
    experiences,
    realtime,
)
from app.services.errors import DomainError

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up (%s)", settings.ENV)
    if settings.CREATE_TABLES_ON_STARTUP:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created")
    yield
    logger.info("Application shutting down")


app = FastAPI(title="ShiftRota API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(auth.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(availability.router, prefix="/api")
app.include_router(schedule.router, prefix="/api")
app.include_router(chat_rooms.router, prefix="/api")
app.include_router(notifications.router, prefix="/api")
app.include_router(experiences.router, prefix="/api")
app.include_router(realtime.router)


@app.get("/health")
def health_check():
    return {"status": "ok"}
