"""Shared pytest fixtures for PromptCanvas tests."""

import io
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Generator
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from promptcanvas.api.main import (
    app,
    get_config,
    get_http_client,
    get_image_store,
    get_object_storage,
)
from promptcanvas.core.config import PromptCanvasConfig
from promptcanvas.core.errors import ImageStoreError
from promptcanvas.core.image_store import ImageStore
from promptcanvas.core.object_storage import LocalObjectStorage


def fail_all(request: httpx.Request) -> httpx.Response:
    """Transport handler that simulates an unreachable network."""
    raise httpx.ConnectError("network unreachable", request=request)


class RecordingTransport:
    """Callable for ``httpx.MockTransport`` that records every request.

    Tests swap ``handler`` to script upstream behaviour; ``requests`` keeps
    the order in which providers were contacted.
    """

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response] = fail_all):
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def hosts(self) -> list[str]:
        return [request.url.host for request in self.requests]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> PromptCanvasConfig:
    """Create a test configuration with temporary directories and no token.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        PromptCanvasConfig instance for testing
    """
    return PromptCanvasConfig(
        _env_file=None,
        data_dir=str(temp_dir / "data"),
        storage_dir=str(temp_dir / "storage"),
        huggingface_api_token=None,
        auto_save_generations=True,
        strict_mutations=False,
    )


@pytest.fixture
def hf_config(test_config: PromptCanvasConfig) -> PromptCanvasConfig:
    """Test configuration with a Hugging Face token set."""
    return test_config.model_copy(update={"huggingface_api_token": "hf_test_token"})


@pytest.fixture
def image_store(test_config: PromptCanvasConfig) -> ImageStore:
    """Create an ImageStore backed by a temporary SQLite file."""
    return ImageStore(test_config.database_path)


@pytest.fixture
def object_storage(test_config: PromptCanvasConfig) -> LocalObjectStorage:
    """Create a storage bucket in the temporary storage directory."""
    return LocalObjectStorage(test_config.storage_dir, test_config.storage_public_path)


@pytest.fixture
def failing_store() -> MagicMock:
    """An ImageStore stand-in whose every operation raises ImageStoreError."""
    store = MagicMock(spec=ImageStore)
    error = ImageStoreError("database unavailable")
    store.list_images.side_effect = error
    store.get_image.side_effect = error
    store.create_image.side_effect = error
    store.set_liked.side_effect = error
    store.toggle_liked.side_effect = error
    store.delete_image.side_effect = error
    return store


@pytest.fixture
def transport() -> RecordingTransport:
    """Recording mock transport; every request fails unless a test scripts it."""
    return RecordingTransport()


@pytest.fixture
def png_bytes() -> bytes:
    """A small solid-colour PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", (64, 48), color=(200, 40, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


def _override(value):
    return lambda: value


@pytest.fixture
def make_client(
    test_config: PromptCanvasConfig,
    image_store: ImageStore,
    object_storage: LocalObjectStorage,
    transport: RecordingTransport,
) -> Generator[Callable[..., TestClient], None, None]:
    """Factory for TestClients with dependency overrides.

    Keyword arguments replace the default config or store for one client.
    """

    def factory(config: PromptCanvasConfig | None = None, store=None) -> TestClient:
        async def http_client():
            async with transport.client() as client:
                yield client

        app.dependency_overrides[get_config] = _override(config or test_config)
        app.dependency_overrides[get_image_store] = _override(store or image_store)
        app.dependency_overrides[get_object_storage] = _override(object_storage)
        app.dependency_overrides[get_http_client] = http_client
        return TestClient(app)

    yield factory
    app.dependency_overrides.clear()


@pytest.fixture
def test_client(make_client) -> TestClient:
    """TestClient wired to the temporary store, bucket, and mock transport."""
    return make_client()
