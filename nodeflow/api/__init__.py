"""
API package - FastAPI routes and schemas.
"""

from nodeflow.api.routes import workflows

__all__ = ["workflows"]
