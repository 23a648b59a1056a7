"""API Routers Package.

Routers:
- ai.py: Noah AI call and usage endpoints

Usage in main.py:
    from api.routers import ai_router

    app.include_router(ai_router, prefix="/ai", tags=["ai"])
"""

from .ai import router as ai_router

__all__ = [
    "ai_router",
]
