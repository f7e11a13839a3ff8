"""PromptCanvas - AI image generation, editing, and gallery service."""

__version__ = "0.1.0"

from promptcanvas.core.config import PromptCanvasConfig, config
from promptcanvas.core.orchestrator import FallbackOrchestrator, GenerationResult

__all__ = [
    "FallbackOrchestrator",
    "GenerationResult",
    "PromptCanvasConfig",
    "config",
]
