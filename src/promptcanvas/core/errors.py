"""Exception hierarchy shared by the PromptCanvas core modules."""


class PromptCanvasError(Exception):
    """Base class for all PromptCanvas errors."""


class ProviderError(PromptCanvasError):
    """An image provider could not produce a usable result.

    Raised by provider implementations and absorbed by the fallback
    orchestrator, which moves on to the next tier.

    Args:
        provider: Display name of the provider that failed.
        message: Human-readable reason.
    """

    def __init__(self, provider: str, message: str):
        self.provider = provider
        self.message = message
        super().__init__(f"{provider}: {message}")


class UpstreamError(PromptCanvasError):
    """A single-provider proxy call failed and has no fallback."""


class ImageStoreError(PromptCanvasError):
    """The image record store could not complete an operation."""


class ImageNotFoundError(ImageStoreError):
    """No record exists for the requested image id."""

    def __init__(self, image_id: str):
        self.image_id = image_id
        super().__init__(f"Image not found: {image_id}")


class StorageError(PromptCanvasError):
    """The object storage bucket rejected a read or write."""


class EditError(PromptCanvasError):
    """An uploaded image could not be decoded or edited."""
