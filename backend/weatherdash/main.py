from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from weatherdash.config import settings
from weatherdash.api import health, locations, weather
from weatherdash.services.dashboard import WeatherDashboard

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Weather Dashboard API",
    description="Weather for tracked locations with cached, deduplicated refreshes",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(",") if settings.allowed_origins != "*" else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Startup event
@app.on_event("startup")
async def startup():
    logger.info("Starting Weather Dashboard API")
    logger.info(f"Environment: {settings.environment}")
    # Tests inject their own dashboard before startup
    if getattr(app.state, "dashboard", None) is None:
        app.state.dashboard = WeatherDashboard(settings)
    await app.state.dashboard.start()
    logger.info("Weather dashboard initialized")

# Shutdown event
@app.on_event("shutdown")
async def shutdown():
    logger.info("Shutting down Weather Dashboard API")
    await app.state.dashboard.stop()
    logger.info("Weather dashboard stopped")

# Include routers
app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(locations.router, prefix="/api", tags=["locations"])
app.include_router(weather.router, prefix="/api", tags=["weather"])

# Root endpoint
@app.get("/")
async def root():
    return {
        "message": "Weather Dashboard API",
        "version": "0.1.0",
        "docs": "/docs"
    }
