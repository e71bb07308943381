"""API routes."""

from jobcost_engine.api.routes.health import router as health_router
from jobcost_engine.api.routes.reports import router as reports_router
from jobcost_engine.api.routes.sub_scopes import router as sub_scopes_router
from jobcost_engine.api.routes.timesheets import router as timesheets_router
from jobcost_engine.api.routes.union_classes import router as union_classes_router

__all__ = [
    "health_router",
    "reports_router",
    "sub_scopes_router",
    "timesheets_router",
    "union_classes_router",
]
