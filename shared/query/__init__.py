from .cache import (
    Query,
    QueryCache,
    QueryKey,
    QueryOptions,
    QueryState,
    hash_query_key,
    partial_match_key,
)
from .client import QueryClient
from .hooks import QueryResult, use_query, use_suspense_query
from .hydration import dehydrate, hydrate

__all__ = [
    "Query",
    "QueryCache",
    "QueryClient",
    "QueryKey",
    "QueryOptions",
    "QueryResult",
    "QueryState",
    "dehydrate",
    "hash_query_key",
    "hydrate",
    "partial_match_key",
    "use_query",
    "use_suspense_query",
]
