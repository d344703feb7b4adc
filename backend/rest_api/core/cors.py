"""
CORS setup.

The mobile app calls the API natively and is not subject to CORS. Browser
origins are only the Expo web build and the counter dashboard.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config.settings import settings


# Expo web (current and legacy ports) and the Vite counter dashboard
LOCAL_ORIGINS = [
    f"http://{host}:{port}"
    for host in ("localhost", "127.0.0.1")
    for port in (8081, 19006, 5173)
]


def get_cors_origins() -> list[str]:
    """ALLOWED_ORIGINS (comma separated) wins; local dev origins otherwise."""
    configured = [o.strip() for o in settings.allowed_origins.split(",")]
    configured = [o for o in configured if o]
    return configured or LOCAL_ORIGINS


def configure_cors(app: FastAPI) -> None:
    # Preflight caching is disabled locally so origin edits apply immediately
    preflight_max_age = 0 if settings.environment == "development" else 600

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Retry-After"],
        max_age=preflight_max_age,
    )
