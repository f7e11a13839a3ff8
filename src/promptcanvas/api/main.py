"""PromptCanvas — FastAPI Application.

This module is the single entry point for the web application.  It defines
the FastAPI ``app`` instance, all REST API routes, and the ``main()`` CLI
function that launches the uvicorn server.

Architecture
------------
The application follows a stateless REST pattern:

- **Configuration** comes from :data:`~promptcanvas.core.config.config`
  (environment variables with the ``PROMPTCANVAS_`` prefix).
- **Image generation** is delegated to third-party providers.  The
  :class:`~promptcanvas.core.orchestrator.FallbackOrchestrator` walks them in
  priority order and always answers with a displayable image; the
  chat-completion proxy routes use a single upstream and report its failures.
- **Gallery persistence** uses :class:`~promptcanvas.core.image_store.ImageStore`
  (SQLite).  List and create calls fall back to mock records when the store
  fails; update and delete report success unless ``strict_mutations`` is on.
- **Uploads** go to :class:`~promptcanvas.core.object_storage.LocalObjectStorage`,
  which is mounted read-only at ``storage_public_path``.  If the bucket
  rejects a write, the image is inlined into the record as a ``data:`` URI.

Endpoints
---------
========  ===============================  ==================================
Method    Path                             Purpose
========  ===============================  ==================================
GET       ``/api/health``                  Liveness and provider status
POST      ``/api/generate-image``          Chat-completion image, as bytes
POST      ``/api/generate-image-url``      Chat-completion image URLs
POST      ``/api/flux-generate``           Multi-provider fallback generation
GET       ``/api/images``                  Gallery listing, newest first
POST      ``/api/images``                  Create a gallery record
GET       ``/api/images/{id}``             Single gallery record
PUT       ``/api/images/{id}``             Set the liked flag
POST      ``/api/images/{id}/toggle-like``  Flip the liked flag
DELETE    ``/api/images/{id}``             Delete a gallery record
POST      ``/api/upload-image``            Store an uploaded image
POST      ``/api/edit-image``              Apply editor adjustments
========  ===============================  ==================================

Usage
-----
CLI (installed entry point)::

    promptcanvas

Direct invocation::

    python -m promptcanvas.api.main
"""

from __future__ import annotations

import base64
import json
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles

from promptcanvas import __version__
from promptcanvas.api.errors import APIError, setup_error_handlers
from promptcanvas.api.gallery_store import (
    filter_images,
    mock_created_image,
    mock_gallery_images,
    mock_updated_image,
    upload_payload,
)
from promptcanvas.api.models import (
    CreateImageRequest,
    EditSettingsRequest,
    FluxGenerateRequest,
    PromptRequest,
    UpdateImageRequest,
)
from promptcanvas.core.chat_image import ChatImageClient
from promptcanvas.core.config import PromptCanvasConfig, config
from promptcanvas.core.editor import apply_edits, encode_png, load_image
from promptcanvas.core.errors import (
    EditError,
    ImageNotFoundError,
    ImageStoreError,
    StorageError,
    UpstreamError,
)
from promptcanvas.core.image_store import GeneratedImage, ImageStore
from promptcanvas.core.object_storage import LocalObjectStorage
from promptcanvas.core.orchestrator import FallbackOrchestrator, GenerationResult

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Application lifecycle: record store and object storage setup.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    On startup:
        Opens the :class:`ImageStore` (creating the schema if needed) and the
        :class:`LocalObjectStorage` bucket, and stores both on ``app.state``.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    app.state.image_store = ImageStore(config.database_path)
    app.state.object_storage = LocalObjectStorage(config.storage_dir, config.storage_public_path)
    logger.info(
        f"PromptCanvas {__version__} started "
        f"(Hugging Face {'enabled' if config.huggingface_enabled else 'disabled'})."
    )

    yield

    logger.info("PromptCanvas shut down.")


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="PromptCanvas",
    description="AI image generation, editing, and gallery API.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Original-URL", "X-Image-Id"],
)

setup_error_handlers(app)

# Uploaded images are served straight from the storage bucket.
app.mount(
    config.storage_public_path,
    StaticFiles(directory=str(config.storage_dir)),
    name="storage",
)


# ---------------------------------------------------------------------------
# Dependencies.
# ---------------------------------------------------------------------------


def get_config() -> PromptCanvasConfig:
    return config


def get_image_store(request: Request) -> ImageStore:
    return request.app.state.image_store


def get_object_storage(request: Request) -> LocalObjectStorage:
    return request.app.state.object_storage


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """One outbound HTTP client per request, closed when the response is sent."""
    async with httpx.AsyncClient(follow_redirects=True) as client:
        yield client


# ---------------------------------------------------------------------------
# Helpers.
# ---------------------------------------------------------------------------


def _require_prompt(prompt: str | None) -> str:
    """Return *prompt* unchanged, or raise a 400 if it is missing or blank.

    The placeholder seed is computed from the prompt exactly as sent.
    """
    if not prompt or not prompt.strip():
        raise APIError(400, "Prompt is required")
    return prompt


def _generation_payload(result: GenerationResult) -> dict:
    """Shape an orchestrator result for the ``/api/flux-generate`` response."""
    if result.is_error:
        return {
            "imageUrl": result.image_url,
            "message": result.message,
            "isError": True,
            "success": False,
        }

    payload = {
        "imageUrl": result.image_url,
        "model": result.model,
        "prompt": result.prompt,
        "source": result.source,
        "success": not result.is_placeholder,
    }
    if result.is_placeholder:
        payload["message"] = result.message
        payload["isPlaceholder"] = True
    if result.image_id:
        payload["imageId"] = result.image_id
    return payload


def _save_generated(store: ImageStore, cfg: PromptCanvasConfig, prompt: str, image_url: str) -> None:
    """Record a proxied generation; failures never block the response."""
    if not cfg.auto_save_generations:
        return
    try:
        image = store.create_image(prompt=prompt, image_url=image_url, user_id=cfg.default_user_id)
    except (ImageStoreError, ValueError) as e:
        logger.error(f"Error saving generated image to database: {e}")
        return
    logger.info(f"Image saved to database with original URL: {image.id}")


def _store_upload(
    store: ImageStore,
    storage: LocalObjectStorage,
    cfg: PromptCanvasConfig,
    data: bytes,
    prompt: str,
    *,
    extension: str = "jpg",
    content_type: str = "image/jpeg",
) -> GeneratedImage:
    """Place *data* in object storage and record it.

    Falls back to an inline ``data:`` URI when the bucket rejects the write.
    If the record cannot be saved, the stored object is removed again.

    Raises:
        APIError: 500 if the record cannot be saved.
    """
    key = f"{cfg.default_user_id}/{int(time.time() * 1000)}.{extension}"
    stored_key: str | None = None

    try:
        stored_key = storage.upload(key, data)
        public_url = storage.get_public_url(stored_key)
        logger.info(f"Upload stored at {public_url}")
    except StorageError as e:
        logger.error(f"Error uploading to storage: {e}")
        public_url = f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"
        logger.info("Fallback: using base64 data URL")

    try:
        return store.create_image(prompt=prompt, image_url=public_url, user_id=cfg.default_user_id)
    except ImageStoreError as e:
        logger.error(f"Error saving image record: {e}")
        if stored_key:
            try:
                storage.remove([stored_key])
            except StorageError as cleanup_error:
                logger.warning(f"Could not remove orphaned object {stored_key}: {cleanup_error}")
        raise APIError(500, "Failed to save image record") from e


# ---------------------------------------------------------------------------
# Routes: generation.
# ---------------------------------------------------------------------------


@app.get("/api/health")
async def health(cfg: PromptCanvasConfig = Depends(get_config)) -> dict:
    """Return liveness information and whether tier 1 is configured."""
    return {
        "status": "ok",
        "version": __version__,
        "huggingface_configured": cfg.huggingface_enabled,
    }


@app.post("/api/generate-image")
async def generate_image(
    req: PromptRequest,
    cfg: PromptCanvasConfig = Depends(get_config),
    store: ImageStore = Depends(get_image_store),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> Response:
    """Generate an image through the chat-completion endpoint and return its bytes.

    The first image URL in the upstream answer is recorded in the gallery
    (best effort), downloaded, and streamed back.  The original URL is
    reported in the ``X-Original-URL`` header.

    Raises:
        APIError: 400 for a missing prompt; 500 with ``details`` if the
            upstream call or the image download fails.
    """
    prompt = _require_prompt(req.prompt)
    chat = ChatImageClient(cfg, client)

    try:
        urls = await chat.extract_image_urls(prompt)
        original_url = urls[0]
        _save_generated(store, cfg, prompt, original_url)
        content, content_type = await chat.fetch_image(original_url)
    except UpstreamError as e:
        raise APIError(500, "Failed to generate image", details=str(e)) from e

    return Response(
        content=content,
        media_type=content_type,
        headers={
            "Cache-Control": "public, max-age=31536000",
            "X-Original-URL": original_url,
        },
    )


@app.post("/api/generate-image-url")
async def generate_image_url(
    req: PromptRequest,
    cfg: PromptCanvasConfig = Depends(get_config),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> dict:
    """Return the image URLs the chat-completion endpoint produced for a prompt.

    Returns:
        Dictionary with ``imageUrl`` (the first URL) and ``allUrls``.

    Raises:
        APIError: 400 for a missing prompt; 500 with ``details`` on upstream
            failure.
    """
    prompt = _require_prompt(req.prompt)

    try:
        urls = await ChatImageClient(cfg, client).extract_image_urls(prompt)
    except UpstreamError as e:
        raise APIError(500, "Failed to get image URL", details=str(e)) from e

    return {"imageUrl": urls[0], "allUrls": urls}


@app.post("/api/flux-generate")
async def flux_generate(
    req: FluxGenerateRequest,
    cfg: PromptCanvasConfig = Depends(get_config),
    store: ImageStore = Depends(get_image_store),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> dict:
    """Generate an image through the multi-provider fallback chain.

    Never fails for a valid prompt: when every provider is down the response
    carries a seeded placeholder (``source == "Fallback"``), and if the
    pipeline itself crashes an emergency placeholder with ``isError``.

    Raises:
        APIError: 400 for a missing prompt.
    """
    prompt = _require_prompt(req.prompt)
    orchestrator = FallbackOrchestrator(
        cfg,
        image_store=store if cfg.auto_save_generations else None,
    )
    result = await orchestrator.generate(client, prompt, req.width, req.height, req.model)
    return _generation_payload(result)


# ---------------------------------------------------------------------------
# Routes: gallery.
# ---------------------------------------------------------------------------


@app.get("/api/images")
async def list_images(
    search: str | None = None,
    liked_only: bool = False,
    cfg: PromptCanvasConfig = Depends(get_config),
    store: ImageStore = Depends(get_image_store),
) -> dict:
    """Return gallery records, newest first.

    Args:
        search: Case-insensitive prompt substring filter.
        liked_only: If ``True``, return only liked images.

    Returns:
        Dictionary with an ``images`` list.  Mock records are returned if the
        store cannot be read.
    """
    try:
        images = [image.to_dict() for image in store.list_images()]
    except ImageStoreError as e:
        logger.error(f"Database error listing images, serving mock data: {e}")
        images = mock_gallery_images(cfg.placeholder_base_url)

    return {"images": filter_images(images, search=search, liked_only=liked_only)}


@app.post("/api/images")
async def create_image(
    req: CreateImageRequest,
    cfg: PromptCanvasConfig = Depends(get_config),
    store: ImageStore = Depends(get_image_store),
) -> dict:
    """Create a gallery record.

    Returns:
        Dictionary with the saved ``image``, or a mock record if the insert
        fails.

    Raises:
        APIError: 400 if ``prompt`` or ``image_url`` is missing.
    """
    if not req.prompt or not req.prompt.strip() or not req.image_url:
        raise APIError(400, "Prompt and image_url are required")

    try:
        image = store.create_image(
            prompt=req.prompt,
            image_url=req.image_url,
            user_id=cfg.default_user_id,
        )
    except ImageStoreError as e:
        logger.error(f"Database error creating image, returning mock record: {e}")
        return {"image": mock_created_image(req.prompt, req.image_url, cfg.default_user_id)}

    return {"image": image.to_dict()}


@app.get("/api/images/{image_id}")
async def get_image(image_id: str, store: ImageStore = Depends(get_image_store)) -> dict:
    """Return a single gallery record.

    Raises:
        APIError: 404 if the image is not found; 500 if the store fails.
    """
    try:
        image = store.get_image(image_id)
    except ImageNotFoundError as e:
        raise APIError(404, "Image not found") from e
    except ImageStoreError as e:
        raise APIError(500, "Failed to load image", details=str(e)) from e
    return {"image": image.to_dict()}


@app.put("/api/images/{image_id}")
async def update_image(
    image_id: str,
    req: UpdateImageRequest,
    cfg: PromptCanvasConfig = Depends(get_config),
    store: ImageStore = Depends(get_image_store),
) -> dict:
    """Set the liked flag of a gallery record.

    In the default lenient mode a failed update is answered with a partial
    mock record so the frontend's optimistic state stands.

    Raises:
        APIError: (only when ``strict_mutations`` is on) 404 for an unknown
            id, 500 for a store failure.
    """
    try:
        image = store.set_liked(image_id, req.liked)
    except ImageNotFoundError as e:
        if cfg.strict_mutations:
            raise APIError(404, "Image not found") from e
        logger.error(f"Image {image_id} not found for update, returning mock record")
        return {"image": mock_updated_image(image_id, req.liked)}
    except ImageStoreError as e:
        if cfg.strict_mutations:
            raise APIError(500, "Failed to update image", details=str(e)) from e
        logger.error(f"Database error updating {image_id}, returning mock record: {e}")
        return {"image": mock_updated_image(image_id, req.liked)}

    return {"image": image.to_dict()}


@app.post("/api/images/{image_id}/toggle-like")
async def toggle_like(image_id: str, store: ImageStore = Depends(get_image_store)) -> dict:
    """Flip the liked flag of a gallery record.

    There is no requested value to echo back, so failures are always reported.

    Raises:
        APIError: 404 for an unknown id, 500 for a store failure.
    """
    try:
        image = store.toggle_liked(image_id)
    except ImageNotFoundError as e:
        raise APIError(404, "Image not found") from e
    except ImageStoreError as e:
        raise APIError(500, "Failed to update image", details=str(e)) from e
    return {"image": image.to_dict()}


@app.delete("/api/images/{image_id}")
async def delete_image(
    image_id: str,
    cfg: PromptCanvasConfig = Depends(get_config),
    store: ImageStore = Depends(get_image_store),
    storage: LocalObjectStorage = Depends(get_object_storage),
) -> dict:
    """Delete a gallery record and, best effort, its stored object.

    Returns:
        ``{"success": True}``.  In the default lenient mode this is returned
        even when the record did not exist or the delete failed.

    Raises:
        APIError: (only when ``strict_mutations`` is on) 404 for an unknown
            id, 500 for a store failure.
    """
    try:
        image = store.delete_image(image_id)
    except ImageNotFoundError as e:
        if cfg.strict_mutations:
            raise APIError(404, "Image not found") from e
        logger.warning(f"Delete of unknown image {image_id} reported as success")
        return {"success": True}
    except ImageStoreError as e:
        if cfg.strict_mutations:
            raise APIError(500, "Failed to delete image", details=str(e)) from e
        logger.error(f"Database error deleting {image_id}, still reporting success: {e}")
        return {"success": True}

    key = storage.key_from_public_url(image.image_url)
    if key:
        try:
            storage.remove([key])
        except StorageError as e:
            logger.warning(f"Could not remove stored object {key}: {e}")

    return {"success": True}


# ---------------------------------------------------------------------------
# Routes: uploads and editing.
# ---------------------------------------------------------------------------


@app.post("/api/upload-image")
async def upload_image(
    image: UploadFile | None = File(default=None),
    prompt: str | None = Form(default=None),
    cfg: PromptCanvasConfig = Depends(get_config),
    store: ImageStore = Depends(get_image_store),
    storage: LocalObjectStorage = Depends(get_object_storage),
) -> dict:
    """Store an uploaded image and record it in the gallery.

    Returns:
        Dictionary with ``image`` holding ``id``, ``url``, ``prompt``,
        ``createdAt``, and ``liked``.

    Raises:
        APIError: 400 if the image or prompt is missing; 500 if the record
            cannot be saved.
    """
    data = await image.read() if image is not None else b""
    if not data or not prompt or not prompt.strip():
        raise APIError(400, "Image and prompt are required")

    saved = _store_upload(store, storage, cfg, data, prompt)
    return {"image": upload_payload(saved)}


@app.post("/api/edit-image")
async def edit_image(
    image: UploadFile | None = File(default=None),
    settings: str | None = Form(default=None),
    prompt: str | None = Form(default=None),
    save: bool = Form(default=False),
    cfg: PromptCanvasConfig = Depends(get_config),
    store: ImageStore = Depends(get_image_store),
    storage: LocalObjectStorage = Depends(get_object_storage),
) -> Response:
    """Apply editor adjustments to an uploaded image and return it as PNG.

    Args:
        image: Source image file.
        settings: JSON object matching :class:`EditSettingsRequest`.  Omitted
            fields keep their neutral defaults.
        prompt: Prompt to record when saving.
        save: Also store the result as a new gallery record; its id is
            returned in the ``X-Image-Id`` header.

    Raises:
        APIError: 400 for a missing or unreadable image, invalid settings, or
            ``save`` without a prompt; 500 if the record cannot be saved.
    """
    data = await image.read() if image is not None else b""
    if not data:
        raise APIError(400, "Image is required")
    if save and (not prompt or not prompt.strip()):
        raise APIError(400, "Prompt is required to save an edited image")

    try:
        edit_settings = EditSettingsRequest.model_validate(
            json.loads(settings) if settings else {}
        ).to_edit_settings()
        edit_settings.validate()
    except ValueError as e:
        raise APIError(400, "Invalid edit settings", details=str(e)) from e

    try:
        edited = apply_edits(load_image(data), edit_settings)
    except EditError as e:
        raise APIError(400, "Could not decode image", details=str(e)) from e

    png = encode_png(edited)
    headers: dict[str, str] = {}
    if save:
        saved = _store_upload(
            store,
            storage,
            cfg,
            png,
            prompt,
            extension="png",
            content_type="image/png",
        )
        headers["X-Image-Id"] = saved.id

    return Response(content=png, media_type="image/png", headers=headers)


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~promptcanvas.core.config.config` (which
    loads from ``PROMPTCANVAS_SERVER_HOST`` and ``PROMPTCANVAS_SERVER_PORT``
    environment variables).  Defaults to ``0.0.0.0:8000``.

    This function is registered as the ``promptcanvas`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "promptcanvas.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
