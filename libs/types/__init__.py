from .search_types import SearchType, MatchType, VectorField, CollectionState
from .infra_clients import InfraClients

__all__ = [
    "CollectionState",
    "InfraClients",
    "MatchType",
    "SearchType",
    "VectorField",
]
