"""Clients for the external image generation engines."""

import base64
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
import requests
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .errors import EmptyResult, MissingCredential, TransportError
from .models import Engine, GenerationConfig, SceneParams
from .prompts import reference_prompt, studio_prompt

logger = logging.getLogger(__name__)


class GenerationEngine(ABC):
    """Turns a frozen scene into an image URL (or ``data:`` URL)."""

    engine: Engine
    label = "Engine"

    def __init__(self, config: GenerationConfig | None = None) -> None:
        self.config = config or GenerationConfig()

    def generate(
        self,
        params: SceneParams,
        api_key: str,
        reference_image: bytes | None = None,
    ) -> str:
        """Generate one still for ``params``.

        Args:
            params: Frozen scene parameters.
            api_key: Credential for this engine.
            reference_image: Clean plate JPEG, used by engines that accept one.

        Returns:
            str: URL or ``data:`` URL of the generated image.

        Raises:
            MissingCredential: If ``api_key`` is empty.
            TransportError: If the engine keeps failing after retries.
            EmptyResult: If the engine answered without an image.

        """
        if not api_key:
            raise MissingCredential(self.label)

        # Only transport failures are worth another attempt.
        retryer = Retrying(
            stop=stop_after_attempt(self.config.retries + 1),
            wait=wait_exponential(
                multiplier=2,
                min=self.config.min_wait,
                max=self.config.max_wait,
            ),
            retry=retry_if_exception_type(TransportError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retryer(self._generate_attempt, params, api_key, reference_image)

    @abstractmethod
    def _generate_attempt(
        self,
        params: SceneParams,
        api_key: str,
        reference_image: bytes | None,
    ) -> str:
        ...


class GeminiEngine(GenerationEngine):
    """Gemini image model; follows the clean plate for composition."""

    engine = Engine.GEMINI
    label = "Gemini"
    default_model = "gemini-2.5-flash-image"

    def _generate_attempt(
        self,
        params: SceneParams,
        api_key: str,
        reference_image: bytes | None,
    ) -> str:
        client = genai.Client(api_key=api_key)
        parts = [types.Part.from_text(text=reference_prompt(params))]
        if reference_image:
            parts.append(types.Part.from_bytes(data=reference_image, mime_type="image/jpeg"))

        try:
            response = client.models.generate_content(
                model=self.config.model or self.default_model,
                contents=[types.Content(parts=parts)],
            )
        except genai_errors.APIError as e:
            raise TransportError(self.label, e.code, e.message or str(e)) from e
        except httpx.HTTPError as e:
            raise TransportError(self.label, None, f"{type(e).__name__}: {e}") from e

        for candidate in response.candidates or []:
            if not candidate.content or not candidate.content.parts:
                continue
            for part in candidate.content.parts:
                if part.inline_data and part.inline_data.data:
                    data = part.inline_data.data
                    if isinstance(data, bytes):
                        data = base64.b64encode(data).decode("ascii")
                    return f"data:image/png;base64,{data}"

        raise EmptyResult(self.label)


class HttpEngine(GenerationEngine):
    """Engines reached through a plain JSON-over-HTTP endpoint."""

    url = ""

    @abstractmethod
    def _headers(self, api_key: str) -> dict[str, str]: ...

    @abstractmethod
    def _payload(self, params: SceneParams) -> dict[str, Any]: ...

    @abstractmethod
    def _image_url(self, data: dict[str, Any]) -> str | None: ...

    def _generate_attempt(
        self,
        params: SceneParams,
        api_key: str,
        reference_image: bytes | None,
    ) -> str:
        try:
            response = requests.post(
                self.url,
                headers={**self._headers(api_key), "Content-Type": "application/json"},
                json=self._payload(params),
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(self.label, None, str(e)) from e

        if not response.ok:
            raise TransportError(self.label, response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(self.label, response.status_code, "Invalid JSON response") from e

        image_url = self._image_url(data) if isinstance(data, dict) else None
        if not image_url:
            raise EmptyResult(self.label)
        return image_url


class BriaEngine(HttpEngine):
    """Bria 2.3 text-to-image through Bria's own API."""

    engine = Engine.BRIA
    label = "Bria"
    url = "https://engine.bria.ai/v1/text-to-image/base/2.3"

    def _headers(self, api_key: str) -> dict[str, str]:
        return {"api_token": api_key}

    def _payload(self, params: SceneParams) -> dict[str, Any]:
        return {
            "prompt": studio_prompt(params),
            "num_results": 1,
            "aspect_ratio": "16:9",
            "sync": True,
        }

    def _image_url(self, data: dict[str, Any]) -> str | None:
        # {"result": [{"url": ...}]}
        result = data.get("result") or []
        return result[0].get("url") if result else None


class FalEngine(HttpEngine):
    """Bria 2.3 (FIBO) hosted on fal.ai."""

    engine = Engine.FAL
    label = "FAL"
    url = "https://fal.run/fal-ai/bria/text-to-image/v2.3"

    def _headers(self, api_key: str) -> dict[str, str]:
        return {"Authorization": f"Key {api_key}"}

    def _payload(self, params: SceneParams) -> dict[str, Any]:
        return {
            "prompt": studio_prompt(params),
            "aspect_ratio": "16:9",
            "safety_tolerance": "2",
        }

    def _image_url(self, data: dict[str, Any]) -> str | None:
        images = data.get("images") or []
        return images[0].get("url") if images else None


ENGINES: dict[Engine, type[GenerationEngine]] = {
    Engine.GEMINI: GeminiEngine,
    Engine.BRIA: BriaEngine,
    Engine.FAL: FalEngine,
}


def create_engine(engine: Engine | str, config: GenerationConfig | None = None) -> GenerationEngine:
    if not isinstance(engine, Engine):
        engine = Engine(engine.upper())
    return ENGINES[engine](config)
