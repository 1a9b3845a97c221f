"""Settings-driven construction of a session store."""

import logging
from typing import Optional

import redis

from config.settings import Settings, get_settings
from session.store import SessionStore
from telemetry.service import configure_logging

logger = logging.getLogger(__name__)


def create_session_store(settings: Optional[Settings] = None) -> SessionStore:
    """
    Factory to create a session store from settings.

    Configures structured logging at ``settings.log_level``. Sessions go to
    Redis when ``redis_url`` is set and stay in process memory otherwise.

    Args:
        settings: Settings to use. Loaded from the environment when None.

    Raises:
        ConfigurationError: If the settings or derived options are invalid.
        RandomSourceUnavailableError: If no secure randomness is available.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    redis_client = None
    if settings.redis_url:
        redis_client = redis.from_url(settings.redis_url)
        logger.info("Using Redis session backend")

    return SessionStore.from_settings(settings, redis_client=redis_client)
