"""Gallery helpers for the PromptCanvas API.

This module keeps the gallery presentation logic out of
``promptcanvas.api.main`` so route handlers can focus on HTTP concerns:

- filtering listed records by prompt text and liked status
- fabricating mock records when the record store is unavailable
- shaping records into the upload response format

Mock records exist because the gallery favours availability over
consistency: when the store fails, list and create calls still answer with
something the frontend can render.  Mock ids are prefixed (``mock-`` for
listings, ``generated-`` for creates) so they are easy to tell apart from
real UUIDs.
"""

from __future__ import annotations

import time

from promptcanvas.core.image_store import GeneratedImage, utc_timestamp

MOCK_USER_ID = "mock-user"
MOCK_IMAGE_SIZE = 512

_MOCK_GALLERY = (
    ("mock-1", "A beautiful sunset over mountains", False),
    ("mock-2", "Abstract digital art with vibrant colors", True),
)


def filter_images(
    images: list[dict],
    *,
    search: str | None = None,
    liked_only: bool = False,
) -> list[dict]:
    """Apply prompt-search and liked filters to serialised records.

    Args:
        images: Records as dictionaries, in display order.
        search: Case-insensitive substring the prompt must contain.
        liked_only: Whether to keep only liked records.

    Returns:
        Filtered records in their original order.
    """
    filtered = images

    if search and search.strip():
        needle = search.strip().lower()
        filtered = [image for image in filtered if needle in (image.get("prompt") or "").lower()]

    if liked_only:
        filtered = [image for image in filtered if image.get("liked")]

    return filtered


def mock_gallery_images(placeholder_base_url: str) -> list[dict]:
    """Fixed gallery shown when the record store cannot be read."""
    now = utc_timestamp()
    return [
        {
            "id": image_id,
            "user_id": MOCK_USER_ID,
            "prompt": prompt,
            "image_url": (
                f"{placeholder_base_url.rstrip('/')}/{image_id}/{MOCK_IMAGE_SIZE}/{MOCK_IMAGE_SIZE}"
            ),
            "liked": liked,
            "created_at": now,
            "updated_at": now,
        }
        for image_id, prompt, liked in _MOCK_GALLERY
    ]


def mock_created_image(prompt: str, image_url: str, user_id: str) -> dict:
    """Record echoed back when an insert fails."""
    now = utc_timestamp()
    return {
        "id": f"generated-{int(time.time() * 1000)}",
        "user_id": user_id,
        "prompt": prompt.strip(),
        "image_url": image_url,
        "liked": False,
        "created_at": now,
        "updated_at": now,
    }


def mock_updated_image(image_id: str, liked: bool) -> dict:
    """Partial record echoed back when a liked update fails."""
    return {
        "id": image_id,
        "liked": liked,
        "updated_at": utc_timestamp(),
    }


def upload_payload(image: GeneratedImage) -> dict:
    """Shape a stored upload for the ``/api/upload-image`` response."""
    return {
        "id": image.id,
        "url": image.image_url,
        "prompt": image.prompt,
        "createdAt": image.created_at,
        "liked": image.liked,
    }
