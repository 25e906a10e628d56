"""FastAPI routers for the back office."""

from .bills import router as bills_router
from .compensation import router as compensation_router
from .cron import router as cron_router
from .proposals import router as proposals_router

__all__ = [
    "bills_router",
    "compensation_router",
    "cron_router",
    "proposals_router",
]
