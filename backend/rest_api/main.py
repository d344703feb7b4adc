"""
REST API main application.
Entry point for the FastAPI REST server.
"""

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded

from rest_api.core import configure_cors, lifespan, register_middlewares
from rest_api.routers.admin import router as admin_router
from rest_api.routers.auth import router as auth_router
from rest_api.routers.menu import router as menu_router
from rest_api.routers.notifications import router as notifications_router
from rest_api.routers.orders import router as orders_router
from rest_api.routers.pickup import router as pickup_router
from rest_api.routers.public import health_router
from rest_api.routers.staff import router as staff_router
from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdMiddleware
from shared.infrastructure.db import STORAGE_ERRORS, storage_error_handler
from shared.security.rate_limit import limiter, rate_limit_exceeded_handler


# Create FastAPI application
app = FastAPI(
    title="Cafeteria Ordering API",
    description="Campus cafeteria order lifecycle and pickup verification",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Storage failures outside a store_guard block: timeouts -> 503, constraints -> 409
for storage_error in STORAGE_ERRORS:
    app.add_exception_handler(storage_error, storage_error_handler)

# Middlewares (last added runs first: correlation id wraps everything)
register_middlewares(app)
configure_cors(app)
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router)
app.include_router(auth_router)
app.include_router(menu_router)
app.include_router(orders_router)
app.include_router(staff_router)
app.include_router(pickup_router)
app.include_router(notifications_router)
app.include_router(admin_router)


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.api_port,
        reload=settings.debug,
    )
