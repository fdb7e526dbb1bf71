"""
Chefdesk - Supabase Client.

Three flavours:
- get_client(): anon key, shared singleton
- get_service_client(): service role, used to validate user JWTs
- get_authenticated_client(token): anon key + the user's JWT so row level
  security applies to every query
"""

from supabase import Client, create_client

from chefdesk.config import settings

# Singleton client instances
_client: Client | None = None
_service_client: Client | None = None


def get_client() -> Client:
    """
    Get the Supabase client.

    Uses singleton pattern to reuse connection.
    """
    global _client

    if _client is None:
        _client = create_client(
            settings.supabase_url,
            settings.supabase_anon_key,
        )

    return _client


def get_service_client() -> Client:
    """Get the service-role client (bypasses RLS; auth checks only)."""
    global _service_client

    if _service_client is None:
        _service_client = create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )

    return _service_client


def get_authenticated_client(access_token: str) -> Client:
    """A fresh client whose PostgREST requests carry the user's JWT."""
    client = create_client(
        settings.supabase_url,
        settings.supabase_anon_key,
    )
    client.postgrest.auth(access_token)
    return client
