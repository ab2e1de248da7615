"""
Document paywall backend: Google/admin auth, folder hierarchy, paid PDF
documents with Stripe checkout, public share links.

Load .env in development only (production uses env vars directly). Add CORS,
error handlers, optional DB init.
"""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env only in development; production should set env vars directly.
# Must happen before config is imported, since config validates at import.
if os.getenv("ENV", "development").lower() == "development":
    load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import FRONTEND_URL, LOG_LEVEL, SKIP_DB_INIT
from errors import AppError, ValidationError

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("paywall")

from database import Base, engine
from auth import router as auth_router
from documents import router as documents_router
from files import router as files_router
from folders import router as folders_router
from payments import router as payments_router
from public_documents import public_router, router as public_documents_router
from settings import router as settings_router
from users import router as users_router

# Create DB tables if not skipping (production uses Alembic migrations)
if not SKIP_DB_INIT:
    Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Document Paywall Backend",
    description="Auth, folders, paid PDF documents with Stripe checkout, public share links.",
)

# CORS: explicit origin. Bearer tokens, but the frontend may still send credentials.
app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL] if FRONTEND_URL else [],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Domain errors -> stable JSON. Provider/config errors keep their detail in the log only."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.msg)
    content = {"detail": exc.public_message, "code": exc.code}
    if isinstance(exc, ValidationError) and exc.field:
        content["field"] = exc.field
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions; log and return generic 500. Never leak stack traces."""
    # Let FastAPI handle HTTPException (validation, auth, etc.)
    if isinstance(exc, HTTPException):
        raise exc
    logging.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(documents_router)
app.include_router(folders_router)
app.include_router(payments_router)
app.include_router(public_documents_router)
app.include_router(public_router)
app.include_router(settings_router)
app.include_router(users_router)
app.include_router(files_router)
