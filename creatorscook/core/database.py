"""
Supabase client for CreatorsCook.

Every service accepts an injected client; the shared one built here is
only the fallback. Table and storage requests are bounded by
Config.DATABASE_TIMEOUT_SECONDS.
"""

from typing import Optional

from supabase import Client, ClientOptions, create_client

from .config import Config


_shared_client: Optional[Client] = None


def create_supabase_client(url: Optional[str] = None, key: Optional[str] = None) -> Client:
    """
    Build a new Supabase client.

    Args:
        url: Project URL (defaults to Config.SUPABASE_URL)
        key: Service key (defaults to Config.SUPABASE_SERVICE_KEY)

    Raises:
        ValueError: No URL or key was given or configured
    """
    if url is None and key is None:
        Config.validate()

    url = url or Config.SUPABASE_URL
    key = key or Config.SUPABASE_SERVICE_KEY
    if not url or not key:
        raise ValueError("Supabase URL and service key are required")

    options = ClientOptions(
        postgrest_client_timeout=Config.DATABASE_TIMEOUT_SECONDS,
        storage_client_timeout=Config.DATABASE_TIMEOUT_SECONDS,
    )
    return create_client(url, key, options=options)


def get_supabase_client() -> Client:
    """Return the shared client, creating it on first use."""
    global _shared_client

    if _shared_client is None:
        _shared_client = create_supabase_client()

    return _shared_client


def reset_supabase_client():
    """Drop the shared client; the next get_supabase_client() builds a new one."""
    global _shared_client
    _shared_client = None
