"""Generative image provider package for Storyboarder."""

from llm.base import BaseImageProvider
from llm.factory import get_image_provider

__all__ = ["get_image_provider", "BaseImageProvider"]
