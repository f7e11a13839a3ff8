"""Core functionality for the PromptCanvas image service.

Architecture Overview
---------------------
1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - All settings prefixed with PROMPTCANVAS_ in .env files

2. **Generation Layer** (providers.py, orchestrator.py, chat_image.py):
   - One class per third-party image provider behind a common interface
   - FallbackOrchestrator runs the providers in priority order and degrades
     to a seeded placeholder
   - ChatImageClient proxies the single-upstream chat-completion endpoint

3. **Persistence Layer** (image_store.py, object_storage.py):
   - SQLite-backed GeneratedImage records
   - Directory-backed object storage for uploads

4. **Editing** (editor.py):
   - Pillow adjustment pipeline mirroring the gallery editor
"""

from promptcanvas.core.config import PromptCanvasConfig, config
from promptcanvas.core.image_store import GeneratedImage, ImageStore
from promptcanvas.core.orchestrator import FallbackOrchestrator, GenerationResult
from promptcanvas.core.providers import ImageProviderBase, ImageResult, build_default_providers

__all__ = [
    "FallbackOrchestrator",
    "GeneratedImage",
    "GenerationResult",
    "ImageProviderBase",
    "ImageResult",
    "ImageStore",
    "PromptCanvasConfig",
    "build_default_providers",
    "config",
]
