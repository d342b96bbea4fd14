"""Supabase client singleton — import get_supabase() anywhere."""
from __future__ import annotations

from functools import lru_cache

from supabase import Client, create_client

from memora.settings import get_settings


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    settings = get_settings()
    url = settings.supabase_url
    key = settings.supabase_key
    if not url or not key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set in .env")
    return create_client(url, key)
