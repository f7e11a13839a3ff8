"""Pydantic request models for the PromptCanvas API.

These models define the JSON schema for every API endpoint.  FastAPI uses
them for automatic request validation, serialisation, and OpenAPI
documentation generation.

Prompt fields are declared optional on purpose: a missing or blank prompt is
reported by the route handlers as a 400 ``{"error": ...}`` response rather
than a schema validation failure.

Models
------
PromptRequest
    Payload for ``POST /api/generate-image`` and ``POST /api/generate-image-url``.
FluxGenerateRequest
    Payload for ``POST /api/flux-generate`` — prompt plus optional model hint
    and dimensions.
CreateImageRequest
    Payload for ``POST /api/images``.
UpdateImageRequest
    Payload for ``PUT /api/images/{id}``.
EditSettingsRequest
    JSON ``settings`` field of ``POST /api/edit-image``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from promptcanvas.core.editor import EditSettings


class PromptRequest(BaseModel):
    """Request body carrying only a prompt.

    Attributes:
        prompt: Text description of the image to generate.
    """

    prompt: str | None = Field(
        default=None,
        description="Text description of the image to generate.",
    )


class FluxGenerateRequest(BaseModel):
    """Request body for the ``POST /api/flux-generate`` endpoint.

    Attributes:
        prompt: Text description of the image to generate.
        model: Model hint.  Providers that cannot honour it ignore it.
        width: Image width in pixels.  ``None`` uses the configured default.
        height: Image height in pixels.  ``None`` uses the configured default.
    """

    prompt: str | None = Field(
        default=None,
        description="Text description of the image to generate.",
    )
    model: str | None = Field(
        default=None,
        description="Model hint (e.g. 'flux').",
    )
    width: int | None = Field(
        default=None,
        gt=0,
        description="Image width in pixels (default 1024).",
    )
    height: int | None = Field(
        default=None,
        gt=0,
        description="Image height in pixels (default 1024).",
    )


class CreateImageRequest(BaseModel):
    """Request body for the ``POST /api/images`` endpoint.

    Attributes:
        prompt: Prompt the image was generated from.
        image_url: Remote URL, storage URL, or ``data:`` URI of the image.
    """

    prompt: str | None = Field(default=None, description="Prompt text.")
    image_url: str | None = Field(default=None, description="URL or data URI of the image.")


class UpdateImageRequest(BaseModel):
    """Request body for the ``PUT /api/images/{id}`` endpoint.

    Attributes:
        liked: ``True`` to like the image, ``False`` to unlike it.
    """

    liked: bool = Field(
        ...,
        description="True to like the image, False to unlike it.",
    )


class EditSettingsRequest(BaseModel):
    """Editor adjustments sent as the JSON ``settings`` form field.

    Percentages use 100 as "unchanged".  Rotation is in clockwise degrees.
    """

    brightness: float = Field(default=100, ge=0, le=400)
    contrast: float = Field(default=100, ge=0, le=400)
    saturation: float = Field(default=100, ge=0, le=400)
    blur: float = Field(default=0, ge=0, le=50)
    rotation: float = Field(default=0)
    flip_x: bool = Field(default=False)
    flip_y: bool = Field(default=False)
    grayscale: bool = Field(default=False)
    sepia: bool = Field(default=False)
    text_overlay: str = Field(default="", max_length=500)
    text_color: str = Field(default="#ffffff")
    text_size: int = Field(default=24, ge=1, le=512)

    def to_edit_settings(self) -> EditSettings:
        return EditSettings(**self.model_dump())
