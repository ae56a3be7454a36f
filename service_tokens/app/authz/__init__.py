"""
Request-level authorization for endpoints protected by access tokens.
"""

from .guard import TokenGuard

__all__ = ["TokenGuard"]
