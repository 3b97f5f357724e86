# app/main.py

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import sys

from app.core.config import settings
from app.core.database import test_connection, init_db
from app.core.rate_limiter import limiter

# Routers
from app.api.endpoints import (
    approval_status as approval_status_router,
    users as users_router,
    webhooks as webhooks_router,
    departments as departments_router,
    projects as projects_router,
    tasks as tasks_router,
    dashboard as dashboard_router,
)

# ------------------------------------------------------------
# LOGURU CONFIGURATION
# ------------------------------------------------------------
logger.remove()
logger.add(
    sys.stdout,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
           "<level>{level}</level> | "
           "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
           "<level>{message}</level>",
    colorize=True,
    backtrace=True,
    diagnose=settings.ENV != "prod",
)

# ------------------------------------------------------------
# FASTAPI APP INIT
# ------------------------------------------------------------
app = FastAPI(
    title="Department Tracker Backend",
    version="1.0.0",
    description="Departments, projects and tasks with sysadmin approval and department-scoped permissions.",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ------------------------------------------------------------
# CORS CONFIGURATION
# ------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "*"],
)

# ------------------------------------------------------------
# REGISTER ROUTERS
# ------------------------------------------------------------
app.include_router(approval_status_router.router)
app.include_router(users_router.router)
app.include_router(webhooks_router.router)
app.include_router(departments_router.router)
app.include_router(projects_router.router)
app.include_router(tasks_router.router)
app.include_router(dashboard_router.router)

# ------------------------------------------------------------
# APPLICATION STARTUP EVENTS
# ------------------------------------------------------------
@app.on_event("startup")
async def on_startup():
    logger.info("Starting Department Tracker Backend...")

    try:
        await test_connection()
        logger.success("Database connection established.")
    except Exception:
        logger.exception("Database connection failed.")
        return

    try:
        await init_db()
        logger.success("Database tables ready.")
    except Exception as e:
        logger.warning(f"Table initialization encountered an issue: {e}")

    if not settings.SUPER_ADMIN_EMAIL:
        logger.warning("SUPER_ADMIN_EMAIL not set; no account will be bootstrapped as sysadmin.")

    logger.success("Backend startup completed successfully.")


# ------------------------------------------------------------
# ROOT HEALTH CHECK
# ------------------------------------------------------------
@app.get("/", tags=["System"])
async def root():
    return {
        "status": "ok",
        "service": "Department Tracker Backend",
        "version": app.version,
    }
