"""
Trade compliance knowledge base and lookup API
"""

__version__ = "1.0.0"
