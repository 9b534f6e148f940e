"""API package."""
from app.api.dashboard_routes import router as dashboard_router
from app.api.finance_routes import router as finance_router
from app.api.reports_routes import router as reports_router

__all__ = ["dashboard_router", "finance_router", "reports_router"]
