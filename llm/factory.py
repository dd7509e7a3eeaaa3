"""Factory for creating image providers."""

import logging

from api.config import Settings
from llm.base import BaseImageProvider
from llm.gemini import GeminiProvider

logger = logging.getLogger(__name__)


def get_image_provider(settings: Settings) -> BaseImageProvider:
    """
    Create image provider based on settings.

    Args:
        settings: Application settings

    Returns:
        Initialized provider

    Raises:
        ValueError: If provider type is invalid or its credentials are missing
    """
    provider_type = settings.llm_provider.lower()

    logger.info(f"Initializing image provider: {provider_type}")

    if provider_type == "gemini":
        config = {
            "api_key": settings.gemini_api_key,
            "base_url": settings.gemini_base_url,
            "text_model": settings.gemini_text_model,
            "image_model": settings.gemini_image_model,
            "aspect_ratio": settings.image_aspect_ratio,
            "timeout": settings.gemini_timeout,
        }
        return GeminiProvider(config)

    else:
        raise ValueError(
            f"Invalid image provider: {provider_type}. Valid options: gemini"
        )
