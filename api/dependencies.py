"""FastAPI dependency injection functions."""

import logging
from functools import lru_cache

from fastapi import Depends

from api.config import Settings, get_settings
from core.exceptions import ServiceUnavailableException, ValidationException
from core.models import ScriptRequest
from llm.base import BaseImageProvider
from llm.factory import get_image_provider
from services.storyboard import ProviderFactory, StoryboardService

logger = logging.getLogger(__name__)


async def get_settings_dependency() -> Settings:
    """Get application settings."""
    return get_settings()


@lru_cache
def _cached_provider() -> BaseImageProvider:
    return get_image_provider(get_settings())


async def get_provider() -> BaseImageProvider:
    """Get the configured image provider.

    Raises ``ServiceUnavailableException`` when the provider cannot be
    created (e.g. no API key configured).
    """
    try:
        return _cached_provider()
    except ValueError as e:
        logger.error(f"Image provider unavailable: {e}")
        raise ServiceUnavailableException(
            f"Image provider unavailable: {e}",
            details={"provider": get_settings().llm_provider},
        )


async def get_provider_factory() -> ProviderFactory:
    """Get the callable that builds the image provider on demand."""
    return get_provider


async def get_storyboard_service(
    provider_factory: ProviderFactory = Depends(get_provider_factory),
) -> StoryboardService:
    """Get a storyboard service that builds its provider only when scenes exist."""
    return StoryboardService(provider_factory=provider_factory)


def get_script(
    body: ScriptRequest,
    settings: Settings = Depends(get_settings_dependency),
) -> str:
    """Extract the script from the request body, enforcing the size limit."""
    if len(body.script) > settings.max_script_length:
        raise ValidationException(
            f"Script exceeds maximum length of {settings.max_script_length} characters",
            details={"length": len(body.script), "max_length": settings.max_script_length},
        )
    return body.script
