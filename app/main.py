"""
ExecBoard - FastAPI application entry point.

A job board for healthcare executives: candidates and employers register,
employers post jobs that admins review, candidates apply, and both sides
message and schedule interviews. AI assistance and Stripe payments are
optional and switch on when their keys are configured.
"""
from fastapi import FastAPI, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from sqlalchemy.orm import Session
from datetime import datetime
import logging
import os

from .config import settings
from .cache import init_cache, close_cache, check_cache_health
from .database import init_db, get_db, get_resilient_session, check_database_health, with_retry
from .errors import install_exception_handlers
from .models import Tier
from .rate_limit import limiter
from .responses import success_response
from .routers import admin, ai, applications, interviews, jobs, messages, notifications
from .routers import payments, profile, resume, saved_jobs, subscriptions
from .auth import router as auth_router
from .auth.models import User
from .services.ai_service import ai_service
from .services import stripe_client

# --- Logging Configuration ---
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("execboard")

DEFAULT_TIERS = [
    {
        "name": "Standard",
        "description": "30-day listing on the job board",
        "price_cents": 29900,
        "duration_days": 30,
    },
    {
        "name": "Featured",
        "description": "30-day listing highlighted at the top of search results",
        "price_cents": 49900,
        "duration_days": 30,
        "is_featured": True,
    },
    {
        "name": "Premium",
        "description": "60-day featured listing with AI candidate matching",
        "price_cents": 79900,
        "duration_days": 60,
        "is_featured": True,
        "is_premium": True,
    },
]


@with_retry
def seed_default_tiers():
    """Seed the posting tiers if none exist."""
    with get_resilient_session() as db:
        if db.query(Tier).first():
            return
        for t in DEFAULT_TIERS:
            db.add(Tier(currency=settings.stripe.stripe_currency, **t))
        logger.info(f"Seeded {len(DEFAULT_TIERS)} default posting tiers")


@with_retry
def bootstrap_admin():
    """Promote user to admin if EXECBOARD_ADMIN_EMAIL is set."""
    if not settings.auth.admin_email:
        return
    with get_resilient_session() as db:
        user = db.query(User).filter(User.email == settings.auth.admin_email.lower()).first()
        if user and not user.is_admin:
            user.role = "ADMIN"
            logger.info(f"Bootstrapped admin: {user.email}")
        elif not user:
            logger.warning(f"EXECBOARD_ADMIN_EMAIL={settings.auth.admin_email} but no user found with that email")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare storage and the key-value store on startup."""
    logger.info("Starting ExecBoard application...")
    os.makedirs("data", exist_ok=True)
    os.makedirs(settings.upload_dir, exist_ok=True)
    if settings.auto_create_tables:
        init_db()
    seed_default_tiers()
    bootstrap_admin()
    await init_cache()
    logger.info("ExecBoard ready!")
    yield
    await close_cache()
    logger.info("Shutting down ExecBoard...")


app = FastAPI(
    title="ExecBoard",
    description="Healthcare executive job board - postings with admin review, applications, messaging, AI assistance and payments",
    version="0.1.0",
    lifespan=lifespan
)

# --- Rate Limiting & Errors ---
app.state.limiter = limiter
install_exception_handlers(app)


# --- Security Headers Middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        return response


# --- Middleware ---
# Parse allowed origins from config
_allowed_origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
for module, tag in (
    (jobs, "jobs"),
    (applications, "applications"),
    (saved_jobs, "saved-jobs"),
    (messages, "messages"),
    (notifications, "notifications"),
    (interviews, "interviews"),
    (profile, "profile"),
    (resume, "resume"),
    (ai, "ai"),
    (payments, "payments"),
    (subscriptions, "subscriptions"),
    (admin, "admin"),
):
    app.include_router(module.router, prefix="/api", tags=[tag])
app.include_router(auth_router, prefix="/auth", tags=["auth"])


# --- API Endpoints ---

@app.get("/api/health", tags=["system"])
async def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint for monitoring.

    503 only when the database does not answer; cache, AI and payments are
    reported but optional.
    """
    database_ok = check_database_health(db)
    cache_ok = await check_cache_health()
    checks = {
        "database": "ok" if database_ok else "error",
        "cache": "not_configured" if cache_ok is None else ("ok" if cache_ok else "error"),
        "ai": "configured" if ai_service.is_configured() else "not_configured",
        "payments": "configured" if stripe_client.is_configured() else "not_configured",
    }
    healthy = database_ok and cache_ok is not False
    return success_response(
        {
            "status": "healthy" if healthy else "degraded",
            "checks": checks,
            "timestamp": datetime.utcnow().isoformat() + "Z",
        },
        status_code=200 if database_ok else 503,
    )
