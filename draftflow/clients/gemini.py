"""Gemini REST client for text and image generation."""

import asyncio
import base64
import json
import logging
from typing import Any, Dict, Optional, Tuple

import aiohttp

from ..errors import (
    GenerationExhausted,
    GeneratorNotConfigured,
    ModelError,
    QuotaExceeded,
    TransientError,
)
from ..models.draft import GenerationRequest

logger = logging.getLogger(__name__)

BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

QUOTA_MESSAGE = "Gemini Quota Reached: Daily limit hit. Try again tomorrow."

QUOTA_MARKERS = ("429", "quota", "rate limit", "resource_exhausted")

# Only the opening of an answer is checked so that copy which merely
# mentions AI is not mistaken for a refusal.
REFUSAL_WINDOW = 200
REFUSAL_PATTERNS = [
    "i cannot fulfill your request",
    "i am just an ai model",
    "i can't provide assistance",
    "i cannot create content",
    "it is not within my programming",
    "i'm unable to",
    "i cannot help with",
    "i'm not able to",
    "as an ai",
    "i'm an ai",
]


def is_refusal(text: str) -> bool:
    opening = text[:REFUSAL_WINDOW].lower()
    for pattern in REFUSAL_PATTERNS:
        if pattern in opening:
            logger.warning(f"LLM refusal detected: {pattern}")
            return True
    return False


class GeminiClient:
    """Client for the Gemini ``generateContent`` and Imagen ``predict`` APIs.

    Errors are classified so callers can decide what to do next:

    * :class:`QuotaExceeded` stops immediately, nothing else is tried;
    * :class:`TransientError` propagates so a retry policy can re-issue
      the whole request;
    * :class:`ModelError` moves on to the next model in the chain.
    """

    def __init__(
        self,
        api_key: Optional[str],
        image_model: str = "imagen-3.0-generate-002",
        timeout: float = 60.0,
        user_agent: str = "Draftflow/1.0",
    ):
        self.api_key = api_key
        self.image_model = image_model
        self.timeout = timeout
        self.headers = {
            "Content-Type": "application/json",
            "User-Agent": user_agent,
        }

    @classmethod
    def from_settings(cls, settings) -> "GeminiClient":
        return cls(
            api_key=settings.gemini_api_key,
            image_model=settings.image_model,
            timeout=settings.generation_timeout,
            user_agent=settings.default_user_agent,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate(self, request: GenerationRequest) -> str:
        """Generate text, walking the model fallback chain in order.

        Raises:
            GeneratorNotConfigured: No API key.
            QuotaExceeded: Provider quota or rate limit hit.
            TransientError: Network or server failure.
            GenerationExhausted: Every model failed with a model error.
        """
        self._require_key()

        last_error = None
        for model in request.models:
            try:
                text = await self._generate_with_model(model, request)
            except ModelError as e:
                logger.warning(f"Model {model} failed: {e}")
                last_error = str(e)
                continue

            if model != request.models[0]:
                logger.info(f"Using fallback model: {model}")
            return text

        logger.error("All models failed")
        raise GenerationExhausted(last_error or "no models attempted")

    async def generate_image(
        self, prompt: str, aspect_ratio: str = "1:1", model: Optional[str] = None
    ) -> bytes:
        """Generate one image and return its decoded bytes."""
        self._require_key()
        model = model or self.image_model

        payload = {
            "instances": [{"prompt": prompt}],
            "parameters": {
                "sampleCount": 1,
                "aspectRatio": aspect_ratio,
                "safetyFilterLevel": "block_some",
                "personGeneration": "allow_adult",
            },
        }
        status, data = await self._send(f"{BASE_URL}/{model}:predict", payload)
        self._check(status, data, model)

        try:
            encoded = data["predictions"][0]["bytesBase64Encoded"]
            return base64.b64decode(encoded)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ModelError(f"No image generated: {e}", model=model)

    async def _generate_with_model(
        self, model: str, request: GenerationRequest
    ) -> str:
        generation_config: Dict[str, Any] = {
            "temperature": request.temperature,
            "maxOutputTokens": request.max_output_tokens,
        }
        if request.response_format == "json":
            generation_config["responseMimeType"] = "application/json"

        payload = {
            "contents": [{"role": "user", "parts": [{"text": request.prompt}]}],
            "generationConfig": generation_config,
        }

        status, data = await self._send(
            f"{BASE_URL}/{model}:generateContent", payload
        )
        self._check(status, data, model)

        text = self._extract_text(data)
        if not text.strip():
            raise ModelError("Empty response from Gemini API", model=model)
        if is_refusal(text):
            raise ModelError("Model refused the request", model=model)
        return text.strip()

    async def _send(self, url: str, payload: Dict[str, Any]) -> Tuple[int, Dict]:
        try:
            return await self._post(url, payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Network error calling Gemini API: {e}")
            raise TransientError(f"Network error: {e}")

    async def _post(self, url: str, payload: Dict[str, Any]) -> Tuple[int, Dict]:
        """POST a JSON payload and return ``(status, body)``."""
        headers = dict(self.headers, **{"x-goog-api-key": self.api_key})
        async with aiohttp.ClientSession(headers=headers) as session:
            async with session.post(
                url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                text = await response.text()
                try:
                    data = json.loads(text) if text else {}
                except ValueError:
                    data = {"error": {"message": text}}
                return response.status, data

    def _check(self, status: int, data: Dict, model: str) -> None:
        message = ""
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            message = str(data["error"].get("message", ""))

        lowered = message.lower()
        if status == 429 or any(marker in lowered for marker in QUOTA_MARKERS):
            logger.warning(f"Gemini quota reached on {model}: {message}")
            raise QuotaExceeded(QUOTA_MESSAGE)
        if status >= 500:
            raise TransientError(f"Gemini API error {status}: {message}")
        if status != 200 or message:
            raise ModelError(
                f"Gemini API error {status}: {message or 'unknown error'}",
                model=model,
            )

    @staticmethod
    def _extract_text(data: Dict) -> str:
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            return ""
        return "".join(p.get("text", "") for p in parts if isinstance(p, dict))

    def _require_key(self) -> None:
        if not self.api_key:
            raise GeneratorNotConfigured(
                "Gemini API key not configured. Set GEMINI_API_KEY."
            )
