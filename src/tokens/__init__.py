"""
Local persistence for the reMarkable cloud token.

One file, one token; optionally encrypted at rest with Fernet.
"""

from .store import TokenStore

__all__ = ["TokenStore"]
