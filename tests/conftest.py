"""Pytest configuration and fixtures."""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_provider, get_provider_factory
from api.main import app
from core.exceptions import GenerationException
from llm.base import BaseImageProvider

# 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)

SAMPLE_SCRIPT = """**电影剧本：测试**

**1. 外景 - 城市 - 白天**

[画面：高楼林立。]

**2. 内景 - 咖啡馆 - 白天**

[画面：玛丽坐在桌前。]
[特写：迈克的眼睛。]

**3. 内景 - 走廊 - 夜晚**

没有画面描述。
"""


class FakeImageProvider(BaseImageProvider):
    """In-memory provider recording every call in order.

    ``fail_on`` is ``(phase, n)``: raise on the n-th (1-based) call of
    ``"enhance"`` or ``"synthesize"``.
    """

    def __init__(
        self,
        fail_on: tuple[str, int] | None = None,
        error: Exception | None = None,
        healthy: bool = True,
    ) -> None:
        super().__init__({})
        self.calls: list[tuple[str, str]] = []
        self.fail_on = fail_on
        self.error = error or GenerationException("Quota exceeded")
        self.healthy = healthy

    def _maybe_fail(self, phase: str) -> None:
        count = sum(1 for p, _ in self.calls if p == phase)
        if self.fail_on == (phase, count):
            raise self.error

    async def enhance_prompt(self, description: str) -> str:
        self.calls.append(("enhance", description))
        self._maybe_fail("enhance")
        return f"cinematic frame: {description}"

    async def synthesize_image(self, prompt: str) -> bytes:
        self.calls.append(("synthesize", prompt))
        self._maybe_fail("synthesize")
        return PNG_BYTES

    async def health_check(self) -> bool:
        return self.healthy

    @property
    def provider_name(self) -> str:
        return "fake"


@pytest.fixture
def fake_provider() -> FakeImageProvider:
    """Provider that always succeeds."""
    return FakeImageProvider()


def use_provider(provider: BaseImageProvider) -> None:
    """Route every provider dependency of the app to *provider*."""

    async def _get_provider():
        return provider

    app.dependency_overrides[get_provider] = _get_provider
    app.dependency_overrides[get_provider_factory] = lambda: _get_provider


@pytest.fixture
def override_get_provider(fake_provider) -> Generator[FakeImageProvider, None, None]:
    """Override the provider dependencies with the fake provider."""
    use_provider(fake_provider)
    yield fake_provider
    app.dependency_overrides.clear()


@pytest.fixture
def client(override_get_provider) -> TestClient:
    """Create test client."""
    return TestClient(app)
