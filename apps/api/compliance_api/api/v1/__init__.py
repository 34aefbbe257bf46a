"""
API v1 routers
"""
from . import compliance

__all__ = ["compliance"]
