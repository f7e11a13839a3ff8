"""Image providers used by the fallback orchestrator.

Each third-party image service is wrapped in a provider class that exposes a
single capability::

    await provider.generate(client, prompt, width, height, model) -> ImageResult

A provider either returns an :class:`ImageResult` or raises
:class:`~promptcanvas.core.errors.ProviderError`.  Providers never retry
beyond their own fixed list of endpoint variants; moving on to the next tier
is the orchestrator's job.

Provider Tiers
--------------
==========================  ==========  =====================================
Provider                    Credential  Accepts
==========================  ==========  =====================================
HuggingFaceProvider         token       first endpoint returning > 1000 bytes
PollinationsProvider        none        first variant with an ``image/*`` type
DeepAIProvider              public key  JSON body with ``output_url``
==========================  ==========  =====================================

All providers share the ``httpx.AsyncClient`` passed in by the caller so a
single request runs its whole cascade on one connection pool.
"""

from __future__ import annotations

import base64
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from urllib.parse import quote, urlencode

import httpx

from promptcanvas.core.config import PromptCanvasConfig
from promptcanvas.core.errors import ProviderError

logger = logging.getLogger(__name__)

# Characters left unescaped by JavaScript's encodeURIComponent.  Pollinations
# keys its cache on the exact path, so the prompt is encoded the same way the
# web client encodes it.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_uri_component(text: str) -> str:
    """Percent-encode *text* for use as a single URL path or query component."""
    return quote(text, safe=_URI_COMPONENT_SAFE)


@dataclass
class ImageResult:
    """A usable image produced by a provider.

    Attributes:
        image_url: HTTP(S) URL or ``data:`` URI of the image.
        model_used: Human-readable label of the model that produced it.
        source: Name of the provider tier.
    """

    image_url: str
    model_used: str
    source: str


class ImageProviderBase(ABC):
    """Abstract base class for image providers.

    Attributes
    ----------
    name : str
        Provider name, reported as ``source`` on success
    model_label : str
        Label reported as ``model`` on success
    config : PromptCanvasConfig
        Configuration object containing provider settings
    """

    name: str = "Base Provider"
    model_label: str = "Base Provider"

    def __init__(self, config: PromptCanvasConfig) -> None:
        self.config = config

    @property
    def is_available(self) -> bool:
        """Whether the provider should be attempted at all."""
        return True

    @abstractmethod
    async def generate(
        self,
        client: httpx.AsyncClient,
        prompt: str,
        width: int,
        height: int,
        model: str | None = None,
    ) -> ImageResult:
        """Produce an image for *prompt*.

        Raises
        ------
        ProviderError
            If no endpoint variant returned a usable payload.
        """

    def _result(self, image_url: str) -> ImageResult:
        return ImageResult(image_url=image_url, model_used=self.model_label, source=self.name)


class HuggingFaceProvider(ImageProviderBase):
    """Token-gated Hugging Face Inference endpoints.

    Endpoints are tried in configured order.  Dimensions are clamped to
    ``huggingface_max_dimension`` and any payload at or below
    ``huggingface_min_bytes`` is rejected, since the inference API sometimes
    answers with short JSON error bodies under a success status.
    """

    name = "Hugging Face"
    model_label = "Hugging Face AI"

    @property
    def is_available(self) -> bool:
        return self.config.huggingface_enabled

    async def generate(
        self,
        client: httpx.AsyncClient,
        prompt: str,
        width: int,
        height: int,
        model: str | None = None,
    ) -> ImageResult:
        ceiling = self.config.huggingface_max_dimension
        payload = {
            "inputs": prompt,
            "parameters": {
                "width": min(width, ceiling),
                "height": min(height, ceiling),
            },
        }
        headers = {
            "Authorization": f"Bearer {self.config.huggingface_api_token.strip()}",
            "Content-Type": "application/json",
        }

        for endpoint in self.config.huggingface_endpoints:
            try:
                response = await client.post(
                    endpoint,
                    json=payload,
                    headers=headers,
                    timeout=self.config.huggingface_timeout,
                )
            except httpx.HTTPError as e:
                logger.warning(f"Hugging Face endpoint {endpoint} failed: {e}")
                continue

            if not response.is_success:
                logger.warning(
                    f"Hugging Face endpoint {endpoint} returned status {response.status_code}"
                )
                continue

            body = response.content
            if len(body) <= self.config.huggingface_min_bytes:
                logger.warning(
                    f"Hugging Face endpoint {endpoint} returned only {len(body)} bytes"
                )
                continue

            content_type = response.headers.get("content-type", "").split(";")[0].strip()
            if not content_type.startswith("image/"):
                content_type = "image/png"
            encoded = base64.b64encode(body).decode("ascii")
            logger.info(f"Hugging Face success via {endpoint}")
            return self._result(f"data:{content_type};base64,{encoded}")

        raise ProviderError(self.name, "all inference endpoints failed")


class PollinationsProvider(ImageProviderBase):
    """URL-based Pollinations generator.

    Pollinations renders the image on the GET of a prompt URL, so a variant is
    accepted once its response headers report an image content type; the URL
    itself is returned to the caller and the body is never read.  Variants
    differ only in the ``model`` query parameter.
    """

    name = "Pollinations AI"
    model_label = "Pollinations AI"

    # ``None`` omits the parameter and lets Pollinations pick its default.
    style_variants: tuple[str | None, ...] = ("flux", "turbo", None)

    def __init__(self, config: PromptCanvasConfig, rng: random.Random | None = None) -> None:
        super().__init__(config)
        self._rng = rng or random.Random()

    def build_url(self, prompt: str, width: int, height: int, style: str | None) -> str:
        """Build the prompt URL for one style variant."""
        params: dict[str, str | int] = {"width": width, "height": height}
        if style:
            params["model"] = style
        params["nologo"] = "true"
        params["enhance"] = "true"
        params["seed"] = self._rng.randint(0, 999_999)
        return f"{self.config.pollinations_base_url}{encode_uri_component(prompt)}?{urlencode(params)}"

    def build_urls(self, prompt: str, width: int, height: int) -> list[str]:
        return [self.build_url(prompt, width, height, style) for style in self.style_variants]

    async def generate(
        self,
        client: httpx.AsyncClient,
        prompt: str,
        width: int,
        height: int,
        model: str | None = None,
    ) -> ImageResult:
        for url in self.build_urls(prompt, width, height):
            try:
                async with client.stream(
                    "GET", url, timeout=self.config.pollinations_timeout
                ) as response:
                    status_ok = response.is_success
                    content_type = response.headers.get("content-type", "")
            except httpx.TimeoutException:
                logger.warning(
                    f"Pollinations variant timed out after {self.config.pollinations_timeout}s"
                )
                continue
            except httpx.HTTPError as e:
                logger.warning(f"Pollinations variant failed: {e}")
                continue

            if not status_ok:
                logger.warning(f"Pollinations variant returned status {response.status_code}")
                continue
            if not content_type.startswith("image/"):
                logger.warning(f"Pollinations returned non-image content ({content_type!r})")
                continue

            logger.info("Pollinations AI success with valid image")
            return self._result(url)

        raise ProviderError(self.name, "all style variants failed")


class DeepAIProvider(ImageProviderBase):
    """DeepAI text2img endpoint using the public quickstart key."""

    name = "DeepAI"
    model_label = "DeepAI Text2Image"

    async def generate(
        self,
        client: httpx.AsyncClient,
        prompt: str,
        width: int,
        height: int,
        model: str | None = None,
    ) -> ImageResult:
        try:
            response = await client.post(
                self.config.deepai_url,
                json={"text": prompt},
                headers={"Api-Key": self.config.deepai_api_key},
                timeout=self.config.deepai_timeout,
            )
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"request failed: {e}") from e

        if not response.is_success:
            raise ProviderError(self.name, f"status {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(self.name, "response was not JSON") from e

        output_url = data.get("output_url") if isinstance(data, dict) else None
        if not output_url:
            raise ProviderError(self.name, "response has no output_url")

        logger.info("DeepAI success")
        return self._result(output_url)


def build_default_providers(
    config: PromptCanvasConfig, rng: random.Random | None = None
) -> list[ImageProviderBase]:
    """Return the provider tiers in priority order."""
    return [
        HuggingFaceProvider(config),
        PollinationsProvider(config, rng=rng),
        DeepAIProvider(config),
    ]
