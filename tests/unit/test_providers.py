"""Tests for promptcanvas.core.providers — individual provider tiers.

All HTTP traffic goes through ``httpx.MockTransport`` (via the
``transport`` fixture), so no real network access occurs.
"""

from __future__ import annotations

import asyncio
import json
import random

import httpx
import pytest

from promptcanvas.core.errors import ProviderError
from promptcanvas.core.providers import (
    DeepAIProvider,
    HuggingFaceProvider,
    PollinationsProvider,
    build_default_providers,
    encode_uri_component,
)


def _generate(provider, transport, prompt="a red balloon", width=1024, height=1024):
    async def go():
        async with transport.client() as client:
            return await provider.generate(client, prompt, width, height)

    return asyncio.run(go())


class TestEncodeUriComponent:
    def test_spaces_and_reserved_characters(self):
        assert encode_uri_component("a red/blue balloon?") == "a%20red%2Fblue%20balloon%3F"

    def test_unreserved_marks_are_kept(self):
        assert encode_uri_component("it's (big)!") == "it's%20(big)!"


class TestHuggingFaceProvider:
    """Tier 1 — token-gated inference endpoints."""

    def test_unavailable_without_token(self, test_config):
        assert HuggingFaceProvider(test_config).is_available is False

    def test_unavailable_with_example_token(self, test_config):
        cfg = test_config.model_copy(update={"huggingface_api_token": "your-token-here"})
        assert HuggingFaceProvider(cfg).is_available is False

    def test_available_with_token(self, hf_config):
        assert HuggingFaceProvider(hf_config).is_available is True

    def test_request_shape_and_dimension_clamp(self, hf_config, transport):
        transport.handler = lambda request: httpx.Response(200, content=b"x" * 5000)

        _generate(HuggingFaceProvider(hf_config), transport, width=2048, height=512)

        request = transport.requests[0]
        assert request.method == "POST"
        assert str(request.url) == hf_config.huggingface_endpoints[0]
        assert request.headers["authorization"] == "Bearer hf_test_token"
        body = json.loads(request.content)
        assert body == {"inputs": "a red balloon", "parameters": {"width": 1024, "height": 512}}

    def test_undersized_payload_advances_to_next_endpoint(self, hf_config, transport):
        sizes = iter([500, 1000, 1001])
        transport.handler = lambda request: httpx.Response(200, content=b"x" * next(sizes))

        result = _generate(HuggingFaceProvider(hf_config), transport)

        assert len(transport.requests) == 3
        assert result.image_url.startswith("data:image/png;base64,")
        assert result.source == "Hugging Face"
        assert result.model_used == "Hugging Face AI"

    def test_error_status_advances_to_next_endpoint(self, hf_config, transport):
        statuses = iter([503, 200])
        transport.handler = lambda request: httpx.Response(next(statuses), content=b"x" * 2000)

        _generate(HuggingFaceProvider(hf_config), transport)

        assert [str(r.url) for r in transport.requests] == hf_config.huggingface_endpoints[:2]

    def test_all_endpoints_failing_raises(self, hf_config, transport):
        with pytest.raises(ProviderError) as exc_info:
            _generate(HuggingFaceProvider(hf_config), transport)
        assert exc_info.value.provider == "Hugging Face"
        assert len(transport.requests) == len(hf_config.huggingface_endpoints)

    def test_image_content_type_is_kept(self, hf_config, transport):
        transport.handler = lambda request: httpx.Response(
            200, content=b"x" * 2000, headers={"content-type": "image/jpeg"}
        )
        result = _generate(HuggingFaceProvider(hf_config), transport)
        assert result.image_url.startswith("data:image/jpeg;base64,")


class TestPollinationsProvider:
    """Tier 2 — URL-based generator checked by content type."""

    def test_build_urls_variants(self, test_config):
        provider = PollinationsProvider(test_config, rng=random.Random(7))
        urls = provider.build_urls("a red balloon", 640, 480)

        assert len(urls) == 3
        for url in urls:
            assert url.startswith("https://image.pollinations.ai/prompt/a%20red%20balloon?")
            assert "width=640&height=480" in url
            assert "nologo=true&enhance=true&seed=" in url
        assert "model=flux" in urls[0]
        assert "model=turbo" in urls[1]
        assert "model=" not in urls[2]

    def test_returns_first_image_variant_url(self, test_config, transport):
        transport.handler = lambda request: httpx.Response(
            200, content=b"jpeg", headers={"content-type": "image/jpeg"}
        )
        result = _generate(PollinationsProvider(test_config), transport)

        assert len(transport.requests) == 1
        assert result.image_url == str(transport.requests[0].url)
        assert result.source == "Pollinations AI"

    def test_non_image_content_tries_next_variant(self, test_config, transport):
        responses = iter(
            [
                httpx.Response(200, content=b"<html>", headers={"content-type": "text/html"}),
                httpx.Response(200, content=b"png", headers={"content-type": "image/png"}),
            ]
        )
        transport.handler = lambda request: next(responses)

        result = _generate(PollinationsProvider(test_config), transport)

        assert len(transport.requests) == 2
        assert "model=turbo" in result.image_url

    def test_timeout_tries_next_variant(self, test_config, transport):
        def handler(request):
            if len(transport.requests) == 1:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, content=b"png", headers={"content-type": "image/png"})

        transport.handler = handler
        result = _generate(PollinationsProvider(test_config), transport)

        assert len(transport.requests) == 2
        assert result.source == "Pollinations AI"

    def test_all_non_image_raises(self, test_config, transport):
        transport.handler = lambda request: httpx.Response(
            200, json={"error": "busy"}, headers={"content-type": "application/json"}
        )
        with pytest.raises(ProviderError):
            _generate(PollinationsProvider(test_config), transport)
        assert len(transport.requests) == 3

    def test_timeout_is_applied(self, test_config, transport):
        transport.handler = lambda request: httpx.Response(
            200, headers={"content-type": "image/png"}
        )
        _generate(PollinationsProvider(test_config), transport)
        assert transport.requests[0].extensions["timeout"]["read"] == 15.0


class TestDeepAIProvider:
    """Tier 3 — quickstart-key endpoint returning JSON."""

    def test_success(self, test_config, transport):
        transport.handler = lambda request: httpx.Response(
            200, json={"output_url": "https://api.deepai.org/job/out.jpg"}
        )
        result = _generate(DeepAIProvider(test_config), transport)

        request = transport.requests[0]
        assert request.headers["api-key"] == test_config.deepai_api_key
        assert json.loads(request.content) == {"text": "a red balloon"}
        assert result.image_url == "https://api.deepai.org/job/out.jpg"
        assert result.model_used == "DeepAI Text2Image"

    def test_missing_output_url_raises(self, test_config, transport):
        transport.handler = lambda request: httpx.Response(200, json={"status": "queued"})
        with pytest.raises(ProviderError):
            _generate(DeepAIProvider(test_config), transport)

    def test_error_status_raises(self, test_config, transport):
        transport.handler = lambda request: httpx.Response(401, json={"err": "quota"})
        with pytest.raises(ProviderError):
            _generate(DeepAIProvider(test_config), transport)

    def test_non_json_raises(self, test_config, transport):
        transport.handler = lambda request: httpx.Response(200, content=b"not json")
        with pytest.raises(ProviderError):
            _generate(DeepAIProvider(test_config), transport)


def test_default_provider_order(test_config):
    names = [provider.name for provider in build_default_providers(test_config)]
    assert names == ["Hugging Face", "Pollinations AI", "DeepAI"]
