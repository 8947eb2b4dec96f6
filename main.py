"""
Carpark Simulation Engine API Server

FastAPI application that runs the carpark occupancy simulation loop and
serves its control endpoints and live car park occupancy.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.exceptions import RequestValidationError
from datetime import datetime
import time

from app.api.routes import simulation, carparks
from app.config import Settings, load_settings
from app.database import create_engine_for, create_tables, make_session_factory
from app.services.facility_store import FacilityStore
from app.services.heartbeat import HeartbeatClient
from app.services.occupancy_model import make_noise_source
from app.services.scheduler import start_scheduler, stop_scheduler
from app.services.simulation_controller import SimulationController
from app.services.simulation_loop import SimulationLoop
from app.services.tick_executor import TickExecutor

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Builds the simulator components, then starts the simulation loop.
    A ConfigurationError here stops the server before any tick runs.
    """
    # Startup
    logger.info("Carpark Simulation Engine starting...")

    settings = app.state.settings or load_settings()
    app.state.settings = settings

    engine = create_engine_for(settings.database_url)
    if settings.auto_create_tables:
        await create_tables(engine)

    store = FacilityStore(make_session_factory(engine))
    controller = SimulationController(store, running=settings.start_running)
    executor = TickExecutor(store, noise_source=make_noise_source(settings.noise_seed))
    heartbeat = HeartbeatClient(settings.heartbeat_url, settings.heartbeat_timeout_seconds)
    loop = SimulationLoop(controller, executor, heartbeat, settings.tick_interval_seconds)

    app.state.store = store
    app.state.controller = controller
    app.state.simulation_loop = loop

    scheduler = start_scheduler(loop)
    app.state.scheduler = scheduler
    logger.info("Background simulation loop started")

    yield

    # Shutdown
    logger.info("Shutting down Carpark Simulation Engine...")
    stop_scheduler(scheduler, loop)
    await heartbeat.close()
    await engine.dispose()
    logger.info("Background simulation loop stopped")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create the FastAPI application; settings are loaded at startup if not given"""
    app = FastAPI(
        title="Carpark Simulation Engine",
        description="Live carpark occupancy simulator for Travel to Hospital Advisor",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json"
    )
    app.state.settings = settings

    # CORS so the admin frontend can call the controls from localhost
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all requests with timing"""
        start_time = time.time()

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000

        logger.info(
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Duration: {duration_ms:.2f}ms"
        )

        return response

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle all uncaught exceptions"""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An internal server error occurred",
                    "details": str(exc) if app.debug else None
                }
            }
        )

    # Validation error handler
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors"""
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "details": exc.errors()
                }
            }
        )

    # Root check
    @app.get("/", tags=["Root"], response_class=PlainTextResponse)
    async def root():
        return "Carpark Simulation Engine is running."

    # Health check endpoint
    @app.get("/health", tags=["Health"])
    async def health_check():
        """
        Health check endpoint.

        Returns server status and version information.
        """
        return {
            "status": "ok",
            "timestamp": datetime.utcnow().isoformat(),
            "version": VERSION,
            "service": "carpark-sim"
        }

    # Include routers
    app.include_router(simulation.router)
    app.include_router(carparks.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=5070,
        log_level="info"
    )
