"""
Locate Interfaces Layer
=======================

Interface adapters (controllers) for the locate tracking module.

Contains:
- Controllers: FastAPI route handlers

This is the outermost layer - handles HTTP requests/responses and
delegates to application services.
"""

from locates.interfaces.controllers import router as locates_router

__all__ = ["locates_router"]
