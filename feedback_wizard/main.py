"""Main FastAPI application"""
from fastapi import FastAPI
from feedback_wizard.middleware.cors import setup_cors
from feedback_wizard.middleware.error_handler import ErrorHandlerMiddleware
from feedback_wizard.config import get_settings
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(
    title="Feedback Wizard API",
    description="Multi-step client feedback survey with storage and sentiment analysis",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Setup CORS
setup_cors(app)

# Add error handling middleware
app.add_middleware(ErrorHandlerMiddleware)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "feedback-wizard",
        "persistence": settings.persistence_backend,
        "sentiment": settings.sentiment_backend
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Feedback Wizard API",
        "version": "1.0.0",
        "docs": "/docs"
    }

# Import and include routers
from feedback_wizard.routers import feedback

app.include_router(feedback.router, prefix="/api/feedback", tags=["Feedback"])

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
