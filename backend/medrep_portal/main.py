import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy import func, select
from medrep_portal.config import get_settings
from medrep_portal.database import engine, Base, async_session
from medrep_portal.errors import register_exception_handlers
from medrep_portal.logging_config import configure_logging
from medrep_portal.routers import analytics, reports, users
from medrep_portal.routers import auth as auth_router

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {"username": "admin",        "name": "System Administrator", "email": "admin@medicalreports.com",  "role": "admin",      "region": None},
    {"username": "supervisor",   "name": "Team Supervisor",      "email": "supervisor@company.com",    "role": "supervisor", "region": "Kigali"},
    {"username": "jean.paul",    "name": "Jean Paul",            "email": "jean.paul@company.com",     "role": "medrep",     "region": "Kigali"},
    {"username": "marie.claire", "name": "Marie Claire",         "email": "marie.claire@company.com",  "role": "medrep",     "region": "Eastern"},
    {"username": "eric.ndayi",   "name": "Eric Ndayishimiye",    "email": "eric.ndayi@company.com",    "role": "medrep",     "region": "Western"},
]


async def create_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_demo_users():
    """Create the demo accounts if they don't exist. Idempotent."""
    from medrep_portal.auth import hash_password
    from medrep_portal.models.user import User

    settings = get_settings()
    async with async_session() as session:
        for u in DEMO_USERS:
            existing = await session.scalar(
                select(User.id).where(func.lower(User.username) == u["username"])
            )
            if not existing:
                session.add(User(**u, password_hash=await hash_password(settings.demo_password)))
                logger.info("Seeded demo user %s", u["username"])
        await session.commit()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)
    # Startup: create tables then seed demo users
    await create_tables()
    if settings.seed_demo_data:
        await seed_demo_users()
    logger.info("MedRep portal started (%s)", settings.environment)
    yield
    # Shutdown
    await engine.dispose()


class NoCacheMiddleware(BaseHTTPMiddleware):
    """Middleware to add no-cache headers to prevent browser caching."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, proxy-revalidate, max-age=0"
        response.headers["Expires"] = "0"
        response.headers["Pragma"] = "no-cache"
        return response


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="MedRep Reporting Portal",
        description="Daily activity reports and team analytics for medical representatives",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(NoCacheMiddleware)
    register_exception_handlers(app)

    app.include_router(auth_router.router, prefix="/api/auth", tags=["Auth"])
    app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])
    app.include_router(analytics.router, prefix="/api/analytics", tags=["Analytics"])
    app.include_router(users.router, prefix="/api/users", tags=["Users"])

    @app.get("/api/health")
    async def health_check():
        return {"success": True, "status": "healthy", "service": "medrep-portal"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("medrep_portal.main:app", host="0.0.0.0", port=8000, log_level=get_settings().log_level.lower())
