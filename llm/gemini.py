"""Google Gemini / Imagen provider over the Generative Language REST API."""

import base64
import binascii
import logging
from typing import Any

import httpx

from core.exceptions import GenerationException
from core.prompt_sanitizer import PromptSanitizer
from llm.base import BaseImageProvider
from llm.prompt_manager import PromptManager, get_prompt_manager

logger = logging.getLogger(__name__)


class GeminiProvider(BaseImageProvider):
    """Prompt enhancement with a Gemini text model, images with Imagen or Gemini image models."""

    def __init__(self, config: dict[str, Any]) -> None:
        """Initialize Gemini provider."""
        super().__init__(config)
        self.api_key = config.get("api_key")
        self.base_url = config.get(
            "base_url", "https://generativelanguage.googleapis.com/v1beta"
        ).rstrip("/")
        self.text_model = config.get("text_model", "gemini-2.5-flash")
        self.image_model = config.get("image_model", "imagen-4.0-generate-001")
        self.aspect_ratio = config.get("aspect_ratio", "16:9")
        self.timeout = config.get("timeout", 120)
        self.temperature = config.get("temperature", 0.7)
        # Injected in tests (httpx.MockTransport)
        self.transport: httpx.AsyncBaseTransport | None = config.get("transport")
        self._prompts: PromptManager | None = config.get("prompt_manager")

        if not self.api_key:
            raise ValueError("Gemini API key is required")

    @property
    def prompts(self) -> PromptManager:
        if self._prompts is None:
            self._prompts = get_prompt_manager()
        return self._prompts

    def _client(self, timeout: float | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout or self.timeout,
            transport=self.transport,
            headers={"x-goog-api-key": self.api_key, "Content-Type": "application/json"},
        )

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST *payload* to ``{base_url}/{path}`` and return the JSON body."""
        try:
            async with self._client() as client:
                response = await client.post(f"{self.base_url}/{path}", json=payload)
                response.raise_for_status()
                return response.json()

        except httpx.HTTPStatusError as e:
            message = _api_error_message(e.response) or str(e)
            logger.error(f"Gemini API error ({e.response.status_code}): {message}")
            raise GenerationException(
                f"Gemini API request failed: {message}",
                details={"provider": "gemini", "status_code": e.response.status_code},
            )
        except httpx.HTTPError as e:
            logger.error(f"Gemini API error: {e}")
            raise GenerationException(
                f"Gemini API request failed: {str(e)}",
                details={"provider": "gemini"},
            )
        except ValueError as e:
            logger.error(f"Failed to parse Gemini response: {e}")
            raise GenerationException(
                "Invalid JSON response from Gemini",
                details={"provider": "gemini", "error": str(e)},
            )

    async def enhance_prompt(self, description: str) -> str:
        """Rewrite a scene description into a detailed English image prompt."""
        clean_description = PromptSanitizer.sanitize(description)
        PromptSanitizer.warn_on_override_attempt(clean_description)

        system_prompt, user_prompt = self.prompts.get(
            "storyboard", "enhance", description=clean_description
        )
        payload = {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
            "generationConfig": {"temperature": self.temperature},
        }

        result = await self._post(f"models/{self.text_model}:generateContent", payload)

        text = "".join(part.get("text", "") for part in _first_candidate_parts(result))
        prompt = PromptSanitizer.clean_enhanced_prompt(text)
        if not prompt:
            raise GenerationException(
                "Prompt enhancement returned no text",
                details={"provider": "gemini", "reason": _block_reason(result)},
            )

        logger.debug(f"Enhanced prompt: {prompt[:200]}")
        return prompt

    async def synthesize_image(self, prompt: str) -> bytes:
        """Generate one image for *prompt* and return its bytes."""
        if self.image_model.startswith("imagen"):
            encoded = await self._predict_imagen(prompt)
        else:
            encoded = await self._generate_inline_image(prompt)

        if not encoded:
            raise GenerationException(
                "Image generation returned no image. The prompt may have been blocked.",
                details={"provider": "gemini", "model": self.image_model},
            )

        try:
            return base64.b64decode(encoded)
        except (binascii.Error, ValueError):
            raise GenerationException(
                "Image generation returned invalid image data",
                details={"provider": "gemini", "model": self.image_model},
            )

    async def _predict_imagen(self, prompt: str) -> str | None:
        payload = {
            "instances": [{"prompt": prompt}],
            "parameters": {"sampleCount": 1, "aspectRatio": self.aspect_ratio},
        }
        result = await self._post(f"models/{self.image_model}:predict", payload)

        for prediction in result.get("predictions") or []:
            if prediction.get("bytesBase64Encoded"):
                return prediction["bytesBase64Encoded"]
        return None

    async def _generate_inline_image(self, prompt: str) -> str | None:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseModalities": ["IMAGE"],
                "imageConfig": {"aspectRatio": self.aspect_ratio},
            },
        }
        result = await self._post(f"models/{self.image_model}:generateContent", payload)

        for part in _first_candidate_parts(result):
            inline = part.get("inlineData") or {}
            if inline.get("data"):
                return inline["data"]
        return None

    async def health_check(self) -> bool:
        """Check that the text model is reachable with the configured key."""
        try:
            async with self._client(timeout=10) as client:
                response = await client.get(f"{self.base_url}/models/{self.text_model}")
                return response.status_code == 200
        except Exception as e:
            logger.error(f"Gemini health check failed: {e}")
            return False

    @property
    def provider_name(self) -> str:
        """Get provider name."""
        return "gemini"


def _first_candidate_parts(result: dict[str, Any]) -> list[dict[str, Any]]:
    candidates = result.get("candidates") or []
    if not candidates:
        return []
    content = candidates[0].get("content") or {}
    return content.get("parts") or []


def _block_reason(result: dict[str, Any]) -> str | None:
    feedback = result.get("promptFeedback") or {}
    if feedback.get("blockReason"):
        return feedback["blockReason"]
    candidates = result.get("candidates") or []
    if candidates:
        return candidates[0].get("finishReason")
    return None


def _api_error_message(response: httpx.Response) -> str | None:
    """Extract ``error.message`` from a Google API error body."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("message")
    return None
