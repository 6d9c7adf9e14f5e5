"""
API route handlers for the HomesApp platform.
"""

from .auth import router as auth_router
from .users import router as users_router
from .properties import router as properties_router
from .appointments import router as appointments_router
from .catalog import router as catalog_router
from .documents import router as documents_router
from .commissions import router as commissions_router
from .leads import router as leads_router
from .accounting import router as accounting_router

ALL_ROUTERS = [
    auth_router,
    users_router,
    properties_router,
    appointments_router,
    catalog_router,
    documents_router,
    commissions_router,
    leads_router,
    accounting_router,
]

__all__ = [
    "auth_router",
    "users_router",
    "properties_router",
    "appointments_router",
    "catalog_router",
    "documents_router",
    "commissions_router",
    "leads_router",
    "accounting_router",
    "ALL_ROUTERS",
]
