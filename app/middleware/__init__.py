"""
Middleware components for request processing.

This package contains middleware for:
- CORS for the dashboard origin
"""

from app.middleware.cors import CORSMiddleware

__all__ = ["CORSMiddleware"]
