"""
Web module for MeshForge Network Health.
Provides the FastAPI-based REST API for the health dashboard.
"""

from .app import WebApplication, create_app

__all__ = ["create_app", "WebApplication"]
