"""
MS Graph client setup with lazy initialization.
"""

from azure.identity import ClientSecretCredential
from msgraph import GraphServiceClient

from core.config import Settings

_graph_client: GraphServiceClient | None = None


def get_graph_client(settings: Settings) -> GraphServiceClient:
    """Get or create the MS Graph client (lazy initialization)."""
    global _graph_client
    if _graph_client is None:
        credential = ClientSecretCredential(
            tenant_id=settings.graph_tenant_id,
            client_id=settings.graph_app_id,
            client_secret=settings.graph_client_secret,
        )
        _graph_client = GraphServiceClient(credentials=credential)
    return _graph_client
