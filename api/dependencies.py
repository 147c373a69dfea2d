"""FastAPI dependency injection providers.

The configuration and the generation client are shared across requests;
services are cheap and built per request.
"""

from functools import lru_cache

from claude_client import ClaudeClient
from config_loader import load_config
from services import EditService, RewriteService, TuneService


@lru_cache()
def get_config() -> dict:
    """Cached config singleton."""
    return load_config()


# Module-level singletons
_client: ClaudeClient | None = None


def get_claude_client() -> ClaudeClient:
    """ClaudeClient singleton."""
    global _client
    if _client is None:
        _client = ClaudeClient.from_config(get_config())
    return _client


def _service_kwargs() -> dict:
    """Common kwargs for all services."""
    return {
        "config": get_config(),
        "client": get_claude_client(),
    }


def get_edit_service() -> EditService:
    return EditService(**_service_kwargs())


def get_tune_service() -> TuneService:
    return TuneService(**_service_kwargs())


def get_rewrite_service() -> RewriteService:
    return RewriteService(**_service_kwargs())


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _client
    _client = None
    get_config.cache_clear()
