"""Per-domain row schema declarations."""

from .domains import DOMAINS, UnknownDomainError, get_schema, resolve_schemas

__all__ = [
    "DOMAINS",
    "UnknownDomainError",
    "get_schema",
    "resolve_schemas",
]
