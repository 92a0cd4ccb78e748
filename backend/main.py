import logging
import os
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from core.auth import auth_backend, fastapi_users
from core.config import settings
from core.exceptions import BarangayError
from core.logging import configure_logging
from db.database import create_db_and_tables, dispose_engine
from routers.announcements import router as announcements_router
from routers.audit import router as audit_router
from routers.auth import router as auth_router
from routers.documents import router as documents_router
from routers.financial import router as financial_router
from routers.households import router as households_router
from routers.incidents import router as incidents_router
from routers.inventory import router as inventory_router
from routers.officials import router as officials_router
from routers.portal import router as portal_router
from routers.resident_requests import router as resident_requests_router
from routers.residents import router as residents_router
from routers.users import router as users_router
from schemas.users import UserCreate, UserRead

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("Starting Barangay Records API (%s)", settings.environment)
    await create_db_and_tables()
    yield
    await dispose_engine()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Barangay Records API",
    description="Records management for barangay offices: residents, documents, inventory and more",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BarangayError)
async def barangay_error_handler(request: Request, exc: BarangayError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"detail": str(exc) or "Internal server error"}
    if settings.is_development:
        content["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return JSONResponse(status_code=500, content=content)


@app.get("/api/health", tags=["health"])
async def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


# Generated certificates and QR images
os.makedirs(settings.uploads_dir, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.uploads_dir), name="uploads")

# Authentication routes (fastapi-users)
app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/api/auth/jwt", tags=["auth"])
app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/api/auth", tags=["auth"])
app.include_router(fastapi_users.get_reset_password_router(), prefix="/api/auth", tags=["auth"])
app.include_router(auth_router, prefix="/api/auth", tags=["auth"])

# Staff
app.include_router(users_router, prefix="/api/users", tags=["users"])
app.include_router(residents_router, prefix="/api/residents", tags=["residents"])
app.include_router(households_router, prefix="/api/households", tags=["households"])
app.include_router(documents_router, prefix="/api/documents", tags=["documents"])
app.include_router(resident_requests_router, prefix="/api/resident-requests", tags=["resident-requests"])
app.include_router(incidents_router, prefix="/api/incidents", tags=["incidents"])
app.include_router(inventory_router, prefix="/api/inventory", tags=["inventory"])
app.include_router(officials_router, prefix="/api/officials", tags=["officials"])
app.include_router(financial_router, prefix="/api/financial", tags=["financial"])
app.include_router(announcements_router, prefix="/api/announcements", tags=["announcements"])
app.include_router(audit_router, prefix="/api/audit", tags=["audit"])

# Resident portal
app.include_router(portal_router, prefix="/api/portal", tags=["portal"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=settings.port, reload=settings.is_development)
