"""Base class for generative image providers."""

from abc import ABC, abstractmethod
from typing import Any


class BaseImageProvider(ABC):
    """Base class for services that turn scene descriptions into images."""

    def __init__(self, config: dict[str, Any]) -> None:
        """
        Initialize provider.

        Args:
            config: Provider-specific configuration
        """
        self.config = config

    @abstractmethod
    async def enhance_prompt(self, description: str) -> str:
        """
        Turn a scene description into a detailed image prompt.

        Args:
            description: Visual description extracted from the script

        Returns:
            Enhanced image prompt

        Raises:
            GenerationException: On network, quota or content errors
        """
        pass

    @abstractmethod
    async def synthesize_image(self, prompt: str) -> bytes:
        """
        Generate an image from a prompt.

        Args:
            prompt: Image prompt

        Returns:
            Raw image bytes

        Raises:
            GenerationException: On network, quota or content errors
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the provider is available.

        Returns:
            True if provider is healthy, False otherwise
        """
        pass

    @property
    def image_mime_type(self) -> str:
        """MIME type of the bytes returned by ``synthesize_image``."""
        return "image/png"

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get provider name."""
        pass
