# meetwhen/main.py
import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from meetwhen.core.config import CALENDAR_FAILURE_POLICY, LOG_LEVEL
from meetwhen.core.errors import RateLimitedError, SchedulingError

# Import Routers
from meetwhen.api.v1 import availability, bookings, event_types, hosts, slots, webhooks
from meetwhen.api.v1.auth import google_calendar

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="MeetWhen Scheduling API",
    description="Availability, slot allocation and booking for hosts and their guests",
    version="1.0.0",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    headers = None
    if isinstance(exc, RateLimitedError) and exc.retry_after:
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.detail},
        headers=headers,
    )


# Include routers
app.include_router(hosts.router, prefix="/api/v1")
app.include_router(availability.router, prefix="/api/v1")
app.include_router(event_types.router, prefix="/api/v1")
app.include_router(slots.router, prefix="/api/v1")
app.include_router(bookings.router, prefix="/api/v1")
app.include_router(webhooks.router, prefix="/api/v1")
app.include_router(google_calendar.router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "MeetWhen Scheduling API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "environment": os.getenv("APP_ENV", "unknown"),
        "calendar_failure_policy": CALENDAR_FAILURE_POLICY,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "meetwhen.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", 8000)),
        reload=True
    )
