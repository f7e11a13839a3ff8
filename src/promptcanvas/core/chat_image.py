"""Client for the chat-completion image endpoint.

The upstream agent answers a prompt with a ``text/event-stream``-style body in
which generated images appear as JSON fragments of the form
``"url":"https://..."``.  Unlike the fallback orchestrator there is a single
upstream here, so every failure surfaces as
:class:`~promptcanvas.core.errors.UpstreamError`.
"""

from __future__ import annotations

import logging
import re

import httpx

from promptcanvas.core.config import PromptCanvasConfig
from promptcanvas.core.errors import UpstreamError

logger = logging.getLogger(__name__)

IMAGE_URL_PATTERN = re.compile(r'"url":"(https:[^"]+)"')
DEFAULT_IMAGE_CONTENT_TYPE = "image/jpeg"


def extract_image_urls(body: str) -> list[str]:
    """Return every image URL in *body*, in order of appearance."""
    return IMAGE_URL_PATTERN.findall(body)


class ChatImageClient:
    """Calls the chat-completion endpoint and fetches the images it links.

    Args:
        config: Application configuration (endpoint, agent and session settings).
        client: Shared HTTP client.
    """

    def __init__(self, config: PromptCanvasConfig, client: httpx.AsyncClient) -> None:
        self.config = config
        self.client = client

    def build_payload(self, prompt: str) -> dict:
        return {
            "agentId": self.config.chat_agent_id,
            "content": prompt,
            "conversationId": self.config.chat_conversation_id,
            "creationParam": {"width": 2, "height": 3, "style": ""},
            "files": [],
            "parentMessageId": 0,
            "reasonEnabled": 0,
            "searchEnabled": 0,
        }

    def build_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream,application/json",
            "Accept-Language": "en-US,en;q=0.9",
            "m-appkey": self.config.chat_app_key,
        }
        if self.config.chat_cookie:
            headers["Cookie"] = self.config.chat_cookie
        return headers

    async def extract_image_urls(self, prompt: str) -> list[str]:
        """Ask the agent for an image and return the URLs it produced.

        Raises:
            UpstreamError: On network failure, a non-success status, or a body
                without any image URLs.
        """
        logger.info(f"Calling chat-completion API with prompt: {prompt!r}")
        try:
            response = await self.client.post(
                self.config.chat_api_url,
                json=self.build_payload(prompt),
                headers=self.build_headers(),
                timeout=self.config.chat_timeout,
            )
        except httpx.HTTPError as e:
            raise UpstreamError(f"Chat-completion request failed: {e}") from e

        if not response.is_success:
            raise UpstreamError(
                f"Chat-completion API error: {response.status_code} {response.reason_phrase}"
            )

        urls = extract_image_urls(response.text)
        logger.info(f"Extracted {len(urls)} image URL(s) from {len(response.text)} chars")
        if not urls:
            raise UpstreamError("No image URLs found in response")
        return urls

    async def fetch_image(self, url: str) -> tuple[bytes, str]:
        """Download *url*.

        Returns:
            Tuple of ``(image bytes, content type)``.

        Raises:
            UpstreamError: On network failure or a non-success status.
        """
        try:
            response = await self.client.get(url, timeout=self.config.chat_timeout)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Failed to fetch image: {e}") from e

        if not response.is_success:
            raise UpstreamError(f"Failed to fetch image: {response.status_code}")

        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        if not content_type.startswith("image/"):
            content_type = DEFAULT_IMAGE_CONTENT_TYPE
        logger.info(f"Fetched image: {len(response.content)} bytes")
        return response.content, content_type
