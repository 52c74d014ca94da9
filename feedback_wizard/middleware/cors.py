"""CORS middleware configuration"""
from fastapi.middleware.cors import CORSMiddleware
from feedback_wizard.config import get_settings

settings = get_settings()


def setup_cors(app):
    """
    Configure CORS middleware for the wizard's browser client

    Args:
        app: FastAPI application instance
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["*"],
    )
