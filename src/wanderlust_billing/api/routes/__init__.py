"""API routes."""

from wanderlust_billing.api.routes.access import router as access_router
from wanderlust_billing.api.routes.admin import router as admin_router
from wanderlust_billing.api.routes.health import router as health_router
from wanderlust_billing.api.routes.payments import router as payments_router

__all__ = ["access_router", "admin_router", "health_router", "payments_router"]
