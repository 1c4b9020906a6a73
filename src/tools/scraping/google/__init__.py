"""Web search collaborator and search-driven discovery."""

from .cse_client import GoogleCseClient, MissingSearchClient, WebSearchClient, create_search_client
from .olx_discovery import OlxDiscoveryAdapter

__all__ = [
    "GoogleCseClient",
    "MissingSearchClient",
    "OlxDiscoveryAdapter",
    "WebSearchClient",
    "create_search_client",
]
