"""
TUI (Terminal User Interface) module for MeshForge Network Health.
Renders the health dashboard views in the terminal with Rich.
"""

from .app import HealthReport

__all__ = ['HealthReport']
