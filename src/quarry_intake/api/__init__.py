"""Backend REST client."""

from .client import BackendClient, BackendError

__all__ = [
    "BackendClient",
    "BackendError",
]
