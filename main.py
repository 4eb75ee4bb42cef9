"""
Medical Records API - role-based REST backend
Accounts, patient profiles, appointments and medical records for a clinic
"""

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
from contextlib import asynccontextmanager
from typing import Optional
import logging
from datetime import datetime

# Import our modules
from app.auth.auth_handler import AuthHandler
from app.config import Settings, get_settings
from app.database import Database
from app.routers import admin, appointments, auth, medical_records, patients
from app.utils.error_handler import register_exception_handlers
from app.utils.rate_limit import limiter

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

public = APIRouter()


@public.get("/")
@limiter.limit("10/minute")
async def root(request: Request):
    """Root endpoint with API information - publicly accessible"""
    settings = request.app.state.settings
    return {
        "success": True,
        "message": settings.app_name,
        "data": {
            "version": API_VERSION,
            "apiPrefix": settings.api_prefix,
            "docs": "/docs",
            "redoc": "/redoc",
            "timestamp": datetime.utcnow().isoformat()
        }
    }


@public.get("/health")
@limiter.limit("30/minute")
async def health_check(request: Request):
    """Health check endpoint"""
    return {
        "success": True,
        "data": {
            "status": "healthy",
            "timestamp": datetime.utcnow().isoformat()
        }
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    # Startup
    logger.info(f"Starting {app.title}...")
    app.state.database.create_all()

    yield

    # Shutdown
    logger.info(f"Shutting down {app.title}...")
    app.state.database.dispose()


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Build the application around injected settings and database handle"""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Role-based REST API for patient profiles, appointments and medical records",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.database = database or Database(settings.database_url)
    app.state.auth_handler = AuthHandler(settings)

    # Add rate limiting; the limiter is shared, so the latest app decides
    limiter.enabled = settings.rate_limit_enabled
    app.state.limiter = limiter
    register_exception_handlers(app)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    prefix = settings.api_prefix
    app.include_router(public, tags=["public"])
    app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["authentication"])
    app.include_router(patients.router, prefix=f"{prefix}/patients", tags=["patients"])
    app.include_router(appointments.router, prefix=f"{prefix}/appointments", tags=["appointments"])
    app.include_router(medical_records.router, prefix=f"{prefix}/medical-records", tags=["medical records"])
    app.include_router(admin.router, prefix=f"{prefix}/admin", tags=["admin"])

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
