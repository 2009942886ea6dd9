"""Wedding RSVP Web Application."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlmodel import Session

from app.core.config import settings
from app.core.database import create_db_and_tables, engine
from app.core.errors import AuthError, ConfigurationError, UpstreamError, ValidationError
from app.core.scheduler import shutdown_scheduler, start_scheduler
from app.routes import auth, guests, pages, playlist, rsvp
from app.spotify.auth import load_refresh_token, persist_rotated_refresh_token
from app.spotify.outbox import release_claims
from app.spotify.token import SpotifyTokenCache

# Configure logging
log_dir = Path.home() / ".logs" / "rsvp"
log_dir.mkdir(parents=True, exist_ok=True)
log_file = log_dir / "latest.log"

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    filename=str(log_file),
)
logger = logging.getLogger(__name__)

APP_DIR = Path(__file__).resolve().parent


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    # Startup
    logger.info("Starting Wedding RSVP application")
    create_db_and_tables()
    with Session(engine) as session:
        refresh_token = load_refresh_token(session)
        release_claims(session)
    app.state.token_cache = SpotifyTokenCache.from_settings(
        refresh_token, on_rotate=persist_rotated_refresh_token
    )
    start_scheduler(app.state.token_cache)
    yield
    # Shutdown
    shutdown_scheduler()
    logger.info("Wedding RSVP application shut down")


app = FastAPI(
    title=settings.app_name,
    description="Wedding RSVP backed by Airtable, with song requests added to a Spotify playlist",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for external access
origins = (
    ["*"]
    if settings.allowed_origins == "*"
    else [o.strip() for o in settings.allowed_origins.split(",")]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount static files
app.mount("/static", StaticFiles(directory=APP_DIR / "static"), name="static")

# Include routers
app.include_router(pages.router)
app.include_router(guests.router)
app.include_router(rsvp.router)
app.include_router(playlist.router)
app.include_router(auth.router)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse({"error": str(exc)}, status_code=400)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Rejected malformed request to {request.url.path}: {exc.errors()}")
    return JSONResponse({"error": "Invalid request format"}, status_code=400)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error on {request.url.path}: {exc}")
    return JSONResponse({"error": "Server configuration error"}, status_code=500)


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    logger.error(f"Upstream error on {request.url.path}: {exc}")
    return JSONResponse({"error": "Internal server error"}, status_code=500)


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    return JSONResponse(
        {
            "success": False,
            "needs_setup": True,
            "error": str(exc),
            "setup_url": exc.setup_url,
        },
        status_code=401,
    )


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}
