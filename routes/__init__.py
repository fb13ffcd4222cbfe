"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.inventory import router as inventory_router

__all__ = [
    "inventory_router",
]
