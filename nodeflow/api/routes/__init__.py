"""
Routes package - FastAPI routers.
"""
