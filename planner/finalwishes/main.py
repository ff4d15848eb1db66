"""
My Final Wishes - Main FastAPI Application
End-of-life pre-planning backend
"""

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import os
from contextlib import asynccontextmanager
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Import API routers
from finalwishes.api import access, auth, billing, email, plans, sections, stripe_webhook, support
from finalwishes.api.admin import dashboard
from finalwishes.utils.database import engine, create_tables, get_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    await create_tables()
    logger.info("Database tables ready")
    yield
    # Shutdown
    await engine.dispose()


# Initialize FastAPI app
app = FastAPI(
    title="My Final Wishes",
    description="End-of-life pre-planning API",
    version="1.0.0",
    docs_url="/api/docs" if os.getenv("DEBUG", "false").lower() == "true" else None,
    lifespan=lifespan
)

# Middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API Routes
app.include_router(auth.router, prefix="/api/v1/auth", tags=["authentication"])
app.include_router(access.router, prefix="/api/v1/access", tags=["access"])
app.include_router(plans.router, prefix="/api/v1/plans", tags=["plans"])
app.include_router(sections.router, prefix="/api/v1/sections", tags=["sections"])
app.include_router(billing.router, prefix="/api/v1/billing", tags=["billing"])
app.include_router(stripe_webhook.router, prefix="/api/v1", tags=["stripe"])
app.include_router(support.router, prefix="/api/v1", tags=["support"])
app.include_router(email.router, prefix="/api/v1/email", tags=["email"])

# Admin Routes
app.include_router(dashboard.router, prefix="/api/v1/admin", tags=["admin"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "finalwishes-api"}


@app.get("/api/v1/health")
async def api_health(db: AsyncSession = Depends(get_db)):
    """API health check including the database"""
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        database = "unavailable"
    return {"status": "healthy" if database == "ok" else "degraded", "database": database, "version": "1.0.0"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "finalwishes.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8011)),
        reload=os.getenv("DEBUG", "false").lower() == "true"
    )
