"""API clients for the remote platforms cfpages talks to.

Each client follows the same pattern:
- Accepts credentials in __init__
- Exposes an `is_available` property (True when credentials are set)
- Issues requests through `RemoteClient.request`, which raises `ApiError`
  with the HTTP status (or None for transport failures)
"""

from cfpages.clients.cloudflare import CloudflareClient
from cfpages.clients.github import GitHubClient
from cfpages.clients.http import ApiError, RemoteClient

__all__ = [
    "ApiError",
    "CloudflareClient",
    "GitHubClient",
    "RemoteClient",
]
