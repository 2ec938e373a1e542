"""
API Routes Module

This module contains all API route definitions organized by resource.
"""

from . import projects
from . import export

__all__ = ['projects', 'export']
