"""
MeetSync - FastAPI Application Setup

Main FastAPI application that provides:
- Meeting-time suggestion endpoint backed by the deterministic slot search engine
- Conflict detection endpoint for rescheduled meetings
- Health monitoring of the calendar store and explanation writer
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional
import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..utils.config import config
from ..utils.helpers import create_error_response
from ..agent.meeting_scheduler import MeetingScheduler
from ..services.calendar_store import CalendarStore, InMemoryCalendarStore, LMSCalendarClient
from ..services.text_generation import ExplanationWriter
from .meeting_routes import meeting_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.api.log_level),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

def build_calendar_store() -> CalendarStore:
    """LMS client when LMS_API_URL is configured, in-memory store otherwise"""
    if config.calendar_store.enabled:
        return LMSCalendarClient(config.calendar_store)
    return InMemoryCalendarStore()

def create_app(
    store: Optional[CalendarStore] = None,
    writer: Optional[ExplanationWriter] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application

    Args:
        store: Calendar store to use instead of the configured one
        writer: Explanation writer to use instead of the configured one

    Returns:
        FastAPI: Configured application instance
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events"""
        try:
            logger.info("Starting MeetSync scheduling service...")

            calendar_store = store or build_calendar_store()
            if hasattr(calendar_store, 'initialize'):
                if not await calendar_store.initialize():
                    raise RuntimeError("Calendar store initialization failed")

            explanation_writer = writer or ExplanationWriter(config.text_generation)
            if not await explanation_writer.initialize():
                logger.warning("Explanation writer unavailable - using templated explanations")

            app.state.calendar_store = calendar_store
            app.state.explanation_writer = explanation_writer
            app.state.scheduler = MeetingScheduler(
                calendar_store,
                config.scheduling,
                writer=explanation_writer
            )

            logger.info("MeetSync scheduling service started successfully")
            yield

        except Exception as e:
            logger.error(f"Failed to start scheduling service: {str(e)}")
            raise
        finally:
            logger.info("Shutting down MeetSync scheduling service...")

            # Cleanup in reverse order
            if getattr(app.state, 'explanation_writer', None) is not None:
                await app.state.explanation_writer.cleanup()
            if getattr(app.state, 'calendar_store', None) is not None:
                await app.state.calendar_store.cleanup()

            logger.info("Scheduling service shutdown complete")

    app = FastAPI(
        title="MeetSync",
        description="Meeting-time negotiation and conflict resolution for the learning-management platform",
        version="1.0.0",
        docs_url="/docs" if config.api.debug else None,
        redoc_url="/redoc" if config.api.debug else None,
        lifespan=lifespan
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Add custom middleware for request logging
    @app.middleware("http")
    async def log_requests(request, call_next):
        start_time = asyncio.get_running_loop().time()
        response = await call_next(request)
        process_time = asyncio.get_running_loop().time() - start_time

        logger.info(
            f"{request.method} {request.url.path} "
            f"completed in {process_time:.3f}s with status {response.status_code}"
        )
        return response

    app.include_router(
        meeting_router,
        prefix="/api/meetings",
        tags=["Meeting Scheduling"]
    )

    @app.get("/")
    async def root():
        """Root endpoint with basic service information"""
        return {
            "service": "MeetSync",
            "version": "1.0.0",
            "status": "operational",
            "capabilities": [
                "meeting_time_suggestion",
                "conflict_detection"
            ],
            "endpoints": {
                "suggest_time": "/api/meetings/suggest-time",
                "detect_conflicts": "/api/meetings/detect-conflicts",
                "health": "/health"
            }
        }

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint for monitoring and load balancing

        Returns:
            Dict: Health status of the scheduling collaborators
        """
        scheduler = getattr(app.state, 'scheduler', None)
        if scheduler is None:
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "error": "Meeting scheduler not initialized"}
            )

        calendar_store = app.state.calendar_store
        writer = app.state.explanation_writer
        health_status = {
            "status": "healthy",
            "services": {
                "calendar_store": "healthy" if getattr(calendar_store, 'is_initialized', False) else "unhealthy",
                "calendar_store_type": type(calendar_store).__name__,
                "explanation_writer": "enabled" if writer.enabled else "templates"
            },
            "scheduling": {
                "timezone": config.scheduling.timezone,
                "working_hours": f"{config.scheduling.workday_start_hour:02d}:00-{config.scheduling.workday_end_hour:02d}:00",
                "horizon_days": config.scheduling.horizon_days
            }
        }
        if health_status["services"]["calendar_store"] != "healthy":
            health_status["status"] = "degraded"
        return health_status

    # Error handlers
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        """Handle HTTP exceptions with consistent format"""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.detail,
                "status_code": exc.status_code,
                "path": str(request.url.path)
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        """Handle general exceptions"""
        logger.error(f"Unhandled exception on {request.url.path}: {str(exc)}")
        return JSONResponse(
            status_code=500,
            content=create_error_response(
                "Internal server error",
                error_code="INTERNAL_ERROR",
                details={"reason": str(exc)} if config.api.debug else None
            )
        )

    return app

# Create the app instance
app = create_app()

# Start the server
def start_server():
    """Start the FastAPI server with uvicorn"""
    uvicorn.run(
        "meetsync.api.main:app",
        host=config.api.host,
        port=config.api.port,
        reload=config.api.debug,
        log_level=config.api.log_level.lower(),
        access_log=True
    )

if __name__ == "__main__":
    start_server()
