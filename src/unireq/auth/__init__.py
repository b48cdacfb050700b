"""Token storage and refresh coordination.

:var __all__: List of public exports from this module
:type __all__: List[str]
"""

from .controller import AuthController, normalize_refresh_result
from .token_store import InMemoryTokenStore, TokenMeta, TokenRecord, TokenStore

__all__ = [
    "AuthController",
    "InMemoryTokenStore",
    "TokenMeta",
    "TokenRecord",
    "TokenStore",
    "normalize_refresh_result",
]
