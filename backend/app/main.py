"""Practice sessions backend entrypoint."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.app.core.errors import SessionEngineError
from backend.app.core.settings import get_settings
from backend.app.api import accounts
from backend.app.api import patients
from backend.app.api import sessions
from backend.app.db.base import Base
from backend.app.db.session import engine

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

app = FastAPI(title=settings.app_name, version=settings.api_version)

origins = [
    "http://localhost:8081",
    "http://127.0.0.1:8081",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(accounts.router)
app.include_router(patients.router)
app.include_router(sessions.router)


@app.exception_handler(SessionEngineError)
async def session_engine_error_handler(request: Request, exc: SessionEngineError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "field": exc.field})


@app.get("/")
def read_root():
    return {"app": "Practice Sessions backend", "status": "ok"}


@app.get("/health")
def health_check():
    return {"status": "ok"}
