from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
from contextlib import asynccontextmanager
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Import modules
from linguapairs.config import settings
from linguapairs.database import init_db
from linguapairs.errors import (
    ApiError,
    api_error_handler,
    request_validation_handler,
    unhandled_error_handler,
)
from linguapairs.routes.auth_routes import auth_router
from linguapairs.routes.challenge_routes import challenge_router
from linguapairs.routes.deck_routes import decks_router
from linguapairs.routes.generation_routes import generation_router
from linguapairs.routes.language_routes import languages_router
from linguapairs.routes.user_routes import users_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info("Starting LinguaPairs Backend...")
    await init_db()
    yield
    # Shutdown
    logger.info("Shutting down LinguaPairs Backend...")


# Create FastAPI application
app = FastAPI(
    title="LinguaPairs Backend API",
    description="Bilingual flashcard decks with LLM pair generation and timed challenges",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error envelope
app.add_exception_handler(ApiError, api_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_error_handler)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for deployment testing"""
    return {
        "status": "healthy",
        "message": "LinguaPairs Backend is running!",
        "version": "1.0.0"
    }


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Welcome to LinguaPairs Backend API",
        "docs": "/docs",
        "health": "/health",
        "version": "1.0.0"
    }


# Include routers
app.include_router(auth_router, prefix="/api/auth", tags=["Authentication"])
app.include_router(decks_router, prefix="/api/decks", tags=["Decks"])
app.include_router(challenge_router, prefix="/api/challenge", tags=["Challenge"])
app.include_router(generation_router, prefix="/api/generate", tags=["Generation"])
app.include_router(users_router, prefix="/api/users", tags=["Users"])
app.include_router(languages_router, prefix="/api/languages", tags=["Languages"])


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
