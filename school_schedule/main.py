# school_schedule/main.py
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from school_schedule.config import settings
from school_schedule.database import Base, engine
from school_schedule.routers import schedules

import time
import logging
from school_schedule.logging_config import setup_logging


setup_logging()
logger = logging.getLogger("school_schedule")


# create tables if missing
Base.metadata.create_all(bind=engine)

app = FastAPI(title="School Schedule Service", version="1.0.0")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
        ms = int((time.time() - start) * 1000)
        logger.info("%s %s -> %s (%dms)", request.method, request.url.path, response.status_code, ms)
        return response
    except Exception:
        ms = int((time.time() - start) * 1000)
        logger.exception("Unhandled error %s %s (%dms)", request.method, request.url.path, ms)
        raise


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "database error"})


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(schedules.router)


@app.get("/")
def root():
    return {"message": "School schedule service is running!"}


@app.get("/ping")
def ping():
    return {"message": "pong"}
