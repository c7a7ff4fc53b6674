from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

# Import routers
from cajapos.modules.auth.router import auth_router
from cajapos.modules.files.router import storage_router

from cajapos.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="CajaPOS",
    description="Diagnostics for the POS client data layer over Supabase",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(storage_router)

@app.get("/")
async def read_root():
    return {
        "message": "CajaPOS is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
        "supabase_url": settings.SUPABASE_URL
    }

@app.on_event("startup")
async def startup_event():
    logger.info("CajaPOS starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    if not settings.SUPABASE_ANON_KEY:
        logger.warning("SUPABASE_ANON_KEY is not set; backend calls will be rejected")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("CajaPOS shutting down...")
