"""Multi-provider fallback orchestration for text-to-image requests.

:class:`FallbackOrchestrator` walks the provider tiers from
:mod:`promptcanvas.core.providers` one at a time and returns the first usable
image.  It never hard-fails:

1. Each available provider is tried once, in priority order.  A
   :class:`~promptcanvas.core.errors.ProviderError` (or any other exception)
   from a tier is logged and the next tier is tried.
2. If every tier fails, a seeded placeholder URL is returned.  The seed is the
   sum of the prompt's character codes, so the same prompt always maps to the
   same placeholder.  No network I/O happens on this branch.
3. If anything escapes the cascade itself, an emergency placeholder embedding
   a truncated prompt is returned instead.

When an :class:`~promptcanvas.core.image_store.ImageStore` is supplied, the
selected result is saved as a gallery record.  Save failures are logged and do
not affect the returned result.

Usage
-----
::

    async with httpx.AsyncClient() as client:
        orchestrator = FallbackOrchestrator(config)
        result = await orchestrator.generate(client, "a red balloon")
        print(result.source, result.image_url)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from promptcanvas.core.config import PromptCanvasConfig
from promptcanvas.core.errors import ImageStoreError, ProviderError
from promptcanvas.core.image_store import ImageStore
from promptcanvas.core.providers import (
    ImageProviderBase,
    build_default_providers,
    encode_uri_component,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_MODEL = "Colorful Placeholder"
PLACEHOLDER_SOURCE = "Fallback"
PLACEHOLDER_MESSAGE = "AI services unavailable - showing colorful placeholder"
EMERGENCY_PROMPT_LIMIT = 20


@dataclass
class GenerationResult:
    """Outcome of one orchestrated generation.

    Attributes:
        prompt: The prompt that was generated for.
        image_url: HTTP(S) URL or ``data:`` URI; never empty.
        model: Label of the model (or placeholder) that produced the image.
        source: Provider tier name, ``"Fallback"`` for placeholders.
        is_placeholder: True when no provider succeeded.
        is_error: True when the emergency placeholder was used.
        message: Explanation attached to placeholder results.
        image_id: Id of the saved gallery record, if one was saved.
    """

    prompt: str
    image_url: str
    model: str | None = None
    source: str | None = None
    is_placeholder: bool = False
    is_error: bool = False
    message: str | None = None
    image_id: str | None = None


def placeholder_seed(prompt: str) -> int:
    """Sum of the character codes of *prompt*."""
    return sum(ord(char) for char in prompt)


def placeholder_url(base_url: str, prompt: str, width: int, height: int) -> str:
    """Seeded placeholder image URL for *prompt* at the given size."""
    return f"{base_url.rstrip('/')}/{placeholder_seed(prompt)}/{width}/{height}"


def emergency_url(base_url: str, prompt: object) -> str:
    """Static text-placeholder URL embedding a shortened form of *prompt*."""
    safe_prompt = str(prompt or "AI Image")
    if len(safe_prompt) > EMERGENCY_PROMPT_LIMIT:
        safe_prompt = safe_prompt[:EMERGENCY_PROMPT_LIMIT] + "..."
    return f"{base_url}?text={encode_uri_component('AI Image: ' + safe_prompt)}"


class FallbackOrchestrator:
    """Runs the provider cascade for a single request.

    Args:
        config: Application configuration.
        providers: Provider tiers in priority order.  Defaults to
            :func:`~promptcanvas.core.providers.build_default_providers`.
        image_store: When given, the selected result is saved as a record.
        user_id: Owner recorded on saved records.  Defaults to
            ``config.default_user_id``.
    """

    def __init__(
        self,
        config: PromptCanvasConfig,
        providers: list[ImageProviderBase] | None = None,
        image_store: ImageStore | None = None,
        user_id: str | None = None,
    ) -> None:
        self.config = config
        self.providers = providers if providers is not None else build_default_providers(config)
        self.image_store = image_store
        self.user_id = user_id or config.default_user_id

    async def generate(
        self,
        client: httpx.AsyncClient,
        prompt: str,
        width: int | None = None,
        height: int | None = None,
        model: str | None = None,
    ) -> GenerationResult:
        """Generate an image for *prompt*, falling back through every tier.

        Returns:
            A :class:`GenerationResult` with a non-empty ``image_url``.
        """
        try:
            result = await self._run_cascade(
                client,
                prompt,
                width or self.config.default_width,
                height or self.config.default_height,
                model or self.config.default_model,
            )
        except Exception as e:
            logger.exception("Image generation pipeline failed")
            return GenerationResult(
                prompt=str(prompt or ""),
                image_url=emergency_url(self.config.emergency_placeholder_base_url, prompt),
                is_error=True,
                message=f"Error: {e}",
            )

        self._save(result)
        return result

    async def _run_cascade(
        self,
        client: httpx.AsyncClient,
        prompt: str,
        width: int,
        height: int,
        model: str,
    ) -> GenerationResult:
        logger.info(f"Generating image for prompt: {prompt!r}")

        for provider in self.providers:
            if not provider.is_available:
                logger.debug(f"Skipping {provider.name}: not configured")
                continue

            try:
                image = await provider.generate(client, prompt, width, height, model)
            except ProviderError as e:
                logger.warning(f"{e.provider} failed ({e.message}), trying next provider")
                continue
            except Exception:
                logger.exception(f"{provider.name} raised unexpectedly, trying next provider")
                continue

            return GenerationResult(
                prompt=prompt,
                image_url=image.image_url,
                model=image.model_used,
                source=image.source,
            )

        logger.info("All providers failed, using seeded placeholder")
        return GenerationResult(
            prompt=prompt,
            image_url=placeholder_url(self.config.placeholder_base_url, prompt, width, height),
            model=PLACEHOLDER_MODEL,
            source=PLACEHOLDER_SOURCE,
            is_placeholder=True,
            message=PLACEHOLDER_MESSAGE,
        )

    def _save(self, result: GenerationResult) -> None:
        """Persist *result* if a store is attached; failures are non-fatal."""
        if self.image_store is None:
            return

        try:
            record = self.image_store.create_image(
                prompt=result.prompt,
                image_url=result.image_url,
                user_id=self.user_id,
            )
        except (ImageStoreError, ValueError) as e:
            logger.error(f"Failed to save generated image: {e}")
            return

        result.image_id = record.id
        logger.info(f"Saved generated image {record.id}")
