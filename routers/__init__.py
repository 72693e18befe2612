"""
Routers Module

API routers for the Voice Order Resolver application.
"""

from .voice_orders import router as voice_orders_router

__all__ = ["voice_orders_router"]
