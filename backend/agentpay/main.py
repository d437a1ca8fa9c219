import sys

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from .config import get_settings
from .models import utcnow
from .routers import agent, groups, invoices, notifications, schedules

settings = get_settings()

# Configure logging
logger.remove()
logger.add(
    sys.stderr,
    level=settings.log_level,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | {name}:{function} - {message}",
)

# Create FastAPI app
app = FastAPI(
    title="AgentPay API",
    description="Natural-language payment agent and group expense ledger for Stellar",
    version="1.0.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info("{} {} -> {}", request.method, request.url.path, response.status_code)
    return response


# Include routers
app.include_router(agent.router)
app.include_router(groups.router)
app.include_router(invoices.router)
app.include_router(schedules.router)
app.include_router(notifications.router)


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": utcnow().isoformat()}


@app.get("/")
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": "AgentPay API",
        "version": "1.0.0",
        "network": settings.stellar_network,
        "docs": "/docs",
        "health": "/health",
    }
