"""
Middleware package for the Trade Compliance API
"""
from .rate_limit import limiter, setup_rate_limiting

__all__ = ["limiter", "setup_rate_limiting"]
