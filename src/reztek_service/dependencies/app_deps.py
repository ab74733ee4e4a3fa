from functools import lru_cache

from reztek_service.config import Settings, settings


@lru_cache()
def get_app_settings() -> Settings:
    """
    Returns the application settings, cached for the process lifetime.
    """
    return settings
