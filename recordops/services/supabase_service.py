# recordops/services/supabase_service.py
from __future__ import annotations

from typing import Any

from recordops.config.app_config import get_settings

# Lazy client: created on first access so imports don't crash without env
_client = None


def _create_client():
    """
    Create and cache the Supabase client on first use.
    Raises at call-time (not import-time) if credentials are missing.
    """
    global _client
    if _client is not None:
        return _client

    settings = get_settings()
    if not settings.SUPABASE_URL or not settings.supabase_key:
        raise RuntimeError(
            "Supabase credentials missing. Set SUPABASE_URL and SUPABASE_SERVICE_ROLE "
            "or SUPABASE_KEY in environment or .env at the repo root."
        )

    # Import here to avoid failing import of this module when keys are absent.
    from supabase import create_client  # type: ignore

    _client = create_client(settings.SUPABASE_URL, settings.supabase_key)
    return _client


class _SupabaseProxy:
    """
    Transparent proxy so callers can do:
        from recordops.services.supabase_service import supabase
        supabase.table("employees").select("*").execute()
    The underlying client is initialized on first attribute access.
    """

    def __getattr__(self, name: str) -> Any:
        return getattr(_create_client(), name)


supabase = _SupabaseProxy()
