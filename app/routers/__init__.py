"""
API routers package
"""

from app.routers.metrics import router as metrics_router
