"""Identity provider access for the Management Activity API."""

from .token_cache import AccessToken, TokenCache

__all__ = ["AccessToken", "TokenCache"]
