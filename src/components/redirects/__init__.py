"""
Redirects component - read-only redirect store for the not-found interceptor.
"""

from ._impl import (
    CustomRedirectCollection,
    RedirectStore,
    create_redirect_store,
    load_redirects_file,
    lookup_keys,
    normalize_path,
)
from .models import (
    RedirectEntry,
    RedirectOrigin,
    RedirectRecord,
    RedirectsFile,
    RedirectState,
)
from .ports import RedirectProvider

__all__ = [
    # Store
    "CustomRedirectCollection",
    "RedirectStore",
    "create_redirect_store",
    "load_redirects_file",
    # Helpers
    "lookup_keys",
    "normalize_path",
    # Models
    "RedirectEntry",
    "RedirectOrigin",
    "RedirectRecord",
    "RedirectsFile",
    "RedirectState",
    # Ports
    "RedirectProvider",
]
