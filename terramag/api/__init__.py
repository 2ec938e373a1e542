"""
API Module

This module provides the FastAPI application and all REST endpoints
for TerraMag surveys.

To run the API server:
    uvicorn terramag.api.main:app --reload

Or use the convenience script:
    python -m terramag.api.main
"""

from .main import app

__all__ = ['app']
