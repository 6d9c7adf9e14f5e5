"""
Middleware package for request validation.
"""

from .validation import ValidationMiddleware

__all__ = ["ValidationMiddleware"]
