"""Pillow image editing pipeline.

Applies the same adjustments the gallery editor offers, in a fixed order:

1. Geometry: rotation (clockwise degrees, canvas expanded to fit), then
   horizontal and vertical flips.
2. Filters: brightness, contrast, saturation (percentages, 100 = unchanged),
   Gaussian blur (pixel radius), grayscale, sepia.
3. Text overlay: centred, bold-weight default font, with a soft dark shadow.

Filters run on the RGB channels only; any alpha channel (including the
transparent corners left by rotation) is carried through unchanged.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image, ImageColor, ImageDraw, ImageEnhance, ImageFilter, ImageFont, ImageOps
from PIL import UnidentifiedImageError

from promptcanvas.core.errors import EditError

logger = logging.getLogger(__name__)

# Standard sepia tone matrix for RGB -> RGB conversion.
SEPIA_MATRIX = (
    0.393, 0.769, 0.189, 0,
    0.349, 0.686, 0.168, 0,
    0.272, 0.534, 0.131, 0,
)

SHADOW_COLOR = (0, 0, 0, 128)
SHADOW_OFFSET = 2
SHADOW_BLUR = 2


@dataclass
class EditSettings:
    """Adjustments for :func:`apply_edits`.

    The defaults leave the image unchanged.
    """

    brightness: float = 100
    contrast: float = 100
    saturation: float = 100
    blur: float = 0
    rotation: float = 0
    flip_x: bool = False
    flip_y: bool = False
    grayscale: bool = False
    sepia: bool = False
    text_overlay: str = ""
    text_color: str = "#ffffff"
    text_size: int = 24

    def validate(self) -> None:
        """Validate edit settings.

        Raises:
            ValueError: If any setting is out of range, with descriptive message
        """
        for name in ("brightness", "contrast", "saturation"):
            value = getattr(self, name)
            if value < 0 or value > 400:
                raise ValueError(f"{name} must be 0-400, got {value}")

        if self.blur < 0 or self.blur > 50:
            raise ValueError(f"blur must be 0-50, got {self.blur}")

        if self.text_size < 1 or self.text_size > 512:
            raise ValueError(f"text_size must be 1-512, got {self.text_size}")

        try:
            ImageColor.getrgb(self.text_color)
        except ValueError as e:
            raise ValueError(f"Invalid text_color: {self.text_color!r}") from e

    @property
    def is_identity(self) -> bool:
        return self == EditSettings()


def load_image(data: bytes) -> Image.Image:
    """Decode image bytes.

    Raises:
        EditError: If the bytes are not a readable image.
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise EditError(f"Could not decode image: {e}") from e
    return image


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _apply_sepia(image: Image.Image) -> Image.Image:
    return image.convert("RGB", SEPIA_MATRIX)


def _draw_text_overlay(image: Image.Image, settings: EditSettings) -> Image.Image:
    """Draw the centred text overlay with a blurred drop shadow."""
    base = image.convert("RGBA")
    font = ImageFont.load_default(size=settings.text_size)
    color = ImageColor.getrgb(settings.text_color)

    measure = ImageDraw.Draw(base)
    left, top, right, bottom = measure.textbbox((0, 0), settings.text_overlay, font=font)
    x = (base.width - (right - left)) / 2 - left
    y = (base.height - (bottom - top)) / 2 - top

    shadow = Image.new("RGBA", base.size, (0, 0, 0, 0))
    ImageDraw.Draw(shadow).text(
        (x + SHADOW_OFFSET, y + SHADOW_OFFSET),
        settings.text_overlay,
        font=font,
        fill=SHADOW_COLOR,
    )
    shadow = shadow.filter(ImageFilter.GaussianBlur(SHADOW_BLUR))

    composed = Image.alpha_composite(base, shadow)
    ImageDraw.Draw(composed).text((x, y), settings.text_overlay, font=font, fill=color)

    if image.mode == "RGBA":
        return composed
    return composed.convert("RGB")


def apply_edits(image: Image.Image, settings: EditSettings) -> Image.Image:
    """Apply *settings* to *image* and return a new image.

    Args:
        image: Source image; left untouched.
        settings: Adjustments to apply.

    Returns:
        Edited image in RGB or RGBA mode.

    Raises:
        ValueError: If the settings are invalid.
    """
    settings.validate()

    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        result = image.convert("RGBA")
    else:
        result = image.convert("RGB")

    if settings.is_identity:
        return result.copy()

    # Geometry
    if settings.rotation % 360:
        result = result.convert("RGBA").rotate(
            -settings.rotation,
            resample=Image.Resampling.BICUBIC,
            expand=True,
        )
    if settings.flip_x:
        result = ImageOps.mirror(result)
    if settings.flip_y:
        result = ImageOps.flip(result)

    # Filters
    alpha = result.getchannel("A") if result.mode == "RGBA" else None
    rgb = result.convert("RGB")

    if settings.brightness != 100:
        rgb = ImageEnhance.Brightness(rgb).enhance(settings.brightness / 100)
    if settings.contrast != 100:
        rgb = ImageEnhance.Contrast(rgb).enhance(settings.contrast / 100)
    if settings.saturation != 100:
        rgb = ImageEnhance.Color(rgb).enhance(settings.saturation / 100)
    if settings.blur > 0:
        rgb = rgb.filter(ImageFilter.GaussianBlur(settings.blur))
    if settings.grayscale:
        rgb = ImageOps.grayscale(rgb).convert("RGB")
    if settings.sepia:
        rgb = _apply_sepia(rgb)

    if alpha is not None:
        rgb.putalpha(alpha)
    result = rgb

    if settings.text_overlay.strip():
        result = _draw_text_overlay(result, settings)

    logger.debug(f"Applied edits {settings} -> {result.size} {result.mode}")
    return result
