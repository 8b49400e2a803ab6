"""
Supabase client factory.

The client backs the catalog reader when CATALOG_BACKEND=supabase. The
service builder creates one per application from its Settings.
"""

from supabase import Client, create_client

from config.settings import Settings


class SupabaseClientError(Exception):
    """Raised when Supabase client cannot be created."""
    pass


def create_supabase_client(settings: Settings) -> Client:
    """
    Create a Supabase client from explicit settings.

    Raises:
        SupabaseClientError: If URL/key are missing or the client cannot be created
    """
    if not settings.supabase_url or not settings.supabase_service_key:
        raise SupabaseClientError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")
    try:
        return create_client(settings.supabase_url, settings.supabase_service_key)
    except Exception as e:
        raise SupabaseClientError(f"Failed to create Supabase client: {e}") from e
