from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import uvicorn
import logging

from app.config import settings
from app.database import create_tables
from app.exceptions import VocabularyAppError, ValidationError
from app.routers import auth, vocab, quiz, stats

# Configure logging
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database and create tables"""
    logger.info("Starting Vocabulary Learning App...")
    create_tables()
    logger.info("Database tables created successfully")
    yield


# Create FastAPI app
app = FastAPI(
    title="Vocabulary Learning App",
    description="German-English-Bengali vocabulary trainer with multiple choice and swipe quizzes",
    version=APP_VERSION,
    debug=settings.debug,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(vocab.router, prefix="/vocab", tags=["Vocabulary"])
app.include_router(quiz.router, prefix="/quiz", tags=["Quiz"])
app.include_router(stats.router, prefix="/stats", tags=["Stats"])


# Root endpoint
@app.get("/")
async def root():
    return {
        "message": "Vocabulary Learning App API",
        "version": APP_VERSION,
        "endpoints": {
            "health": "/health",
            "auth": "/auth",
            "vocab": "/vocab",
            "quiz": "/quiz",
            "stats": "/stats"
        }
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.exception_handler(VocabularyAppError)
async def vocabulary_error_handler(request: Request, exc: VocabularyAppError):
    logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    content = {
        "error": exc.code,
        "message": exc.message
    }
    if isinstance(exc, ValidationError) and exc.field:
        content["field"] = exc.field
    return JSONResponse(status_code=exc.status_code, content=content)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception on {request.method} {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "Something went wrong on our end"
        }
    )


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug
    )
