"""Configuration management for the PromptCanvas image service.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the PROMPTCANVAS_
prefix, allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (PROMPTCANVAS_* prefix)
2. .env file in the project root
3. Default values defined in PromptCanvasConfig

Example .env file:
    PROMPTCANVAS_HUGGINGFACE_API_TOKEN=hf_xxxxxxxxxxxxxxxx
    PROMPTCANVAS_DATA_DIR=data
    PROMPTCANVAS_SERVER_PORT=8000
    PROMPTCANVAS_STRICT_MUTATIONS=false

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
Route handlers receive it through the ``get_config`` dependency so tests can
substitute their own instance.

Usage Example
-------------
    from promptcanvas.core.config import config

    print(config.database_path)
    print(config.huggingface_enabled)

Provider Settings
-----------------
The fallback chain reads three groups of provider settings:
- huggingface_*: token-gated inference endpoints (tier 1, skipped without a token)
- pollinations_*: URL-based generator (tier 2, bounded by pollinations_timeout)
- deepai_*: free-tier endpoint with a public quickstart key (tier 3)

Only the Pollinations tier has a timeout by default.  The Hugging Face and
DeepAI timeouts default to ``None`` (wait indefinitely), matching the
behaviour of the hosted service this backend replaces.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Token value shipped in example env files; treated the same as "no token".
HUGGINGFACE_TOKEN_PLACEHOLDER = "your-token-here"


class PromptCanvasConfig(BaseSettings):
    """Main configuration for the PromptCanvas image service.

    This class uses Pydantic Settings to manage all application configuration.
    Values are loaded from environment variables with the PROMPTCANVAS_ prefix,
    with fallback to defaults defined here.

    Attributes
    ----------
    Paths:
        data_dir : Path
            Directory holding the SQLite database
        storage_dir : Path
            Root of the object storage bucket for uploaded images
        database_filename : str
            Name of the SQLite file inside data_dir
        storage_public_path : str
            URL prefix under which storage_dir is served

    Server Settings:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port for uvicorn (1024-65535)
        cors_allow_origins : list[str]
            Origins allowed by the CORS middleware

    Provider Settings:
        huggingface_api_token : str | None
            Bearer token for Hugging Face Inference (tier 1 runs only if set)
        huggingface_endpoints : list[str]
            Model endpoints tried in order
        pollinations_timeout : float
            Per-variant timeout in seconds for tier 2
        deepai_api_key : str
            Public quickstart key for tier 3

    Behaviour Flags:
        auto_save_generations : bool
            Persist orchestrator results as gallery records
        strict_mutations : bool
            Report real outcomes from update/delete instead of always
            succeeding

    Notes
    -----
    - Directories are created automatically if they don't exist
    - To modify config, set environment variables and restart the application
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PROMPTCANVAS_",
        case_sensitive=False,
    )

    # Paths
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding the SQLite database",
    )
    storage_dir: Path = Field(
        default=Path("storage"),
        description="Root directory of the generated-images bucket",
    )
    database_filename: str = Field(
        default="generated_images.db",
        description="SQLite database filename inside data_dir",
    )
    storage_public_path: str = Field(
        default="/storage",
        description="URL prefix the storage bucket is served under",
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=8000,
        description="Server port",
        ge=1024,
        le=65535,
    )
    cors_allow_origins: list[str] = Field(
        default=["*"],
        description="Origins allowed to call the API",
    )

    # Default generation settings
    default_width: int = Field(default=1024, ge=1)
    default_height: int = Field(default=1024, ge=1)
    default_model: str = Field(default="flux")

    # Tier 1: Hugging Face Inference
    huggingface_api_token: str | None = Field(
        default=None,
        description="Bearer token for Hugging Face Inference",
    )
    huggingface_endpoints: list[str] = Field(
        default=[
            "https://api-inference.huggingface.co/models/black-forest-labs/FLUX.1-schnell",
            "https://api-inference.huggingface.co/models/stabilityai/stable-diffusion-xl-base-1.0",
            "https://api-inference.huggingface.co/models/runwayml/stable-diffusion-v1-5",
        ],
        description="Inference endpoints tried in order",
    )
    huggingface_max_dimension: int = Field(
        default=1024,
        description="Ceiling applied to width and height for Hugging Face requests",
        ge=1,
    )
    huggingface_min_bytes: int = Field(
        default=1000,
        description="Payloads at or below this size are treated as error bodies",
        ge=0,
    )
    huggingface_timeout: float | None = Field(
        default=None,
        description="Request timeout in seconds (None waits indefinitely)",
    )

    # Tier 2: Pollinations
    pollinations_base_url: str = Field(
        default="https://image.pollinations.ai/prompt/",
        description="Base URL for the Pollinations prompt endpoint",
    )
    pollinations_timeout: float = Field(
        default=15.0,
        description="Per-variant timeout in seconds",
        gt=0,
    )

    # Tier 3: DeepAI
    deepai_url: str = Field(
        default="https://api.deepai.org/api/text2img",
        description="DeepAI text-to-image endpoint",
    )
    deepai_api_key: str = Field(
        default="quickstart-QUdJIGlzIGNvbWluZy4uLi4K",
        description="DeepAI public quickstart key",
    )
    deepai_timeout: float | None = Field(
        default=None,
        description="Request timeout in seconds (None waits indefinitely)",
    )

    # Placeholders
    placeholder_base_url: str = Field(
        default="https://picsum.photos/seed",
        description="Seeded placeholder image service",
    )
    emergency_placeholder_base_url: str = Field(
        default="https://via.placeholder.com/1024x1024/6366f1/ffffff",
        description="Static text-placeholder image used when the pipeline crashes",
    )

    # Chat-completion image proxy
    chat_api_url: str = Field(
        default="https://longcat.chat/api/v1/chat-completion",
        description="Chat-completion endpoint used by /api/generate-image",
    )
    chat_agent_id: str = Field(default="genImage")
    chat_conversation_id: str = Field(default="6a099a5e-fa80-4cb5-8de7-611f292c23cc")
    chat_app_key: str = Field(default="fe_com.sankuai.friday.fe.longcat")
    chat_cookie: str | None = Field(
        default=None,
        description="Session cookie forwarded to the chat-completion endpoint",
    )
    chat_timeout: float | None = Field(default=None)

    # Records
    default_user_id: str = Field(
        default="00000000-0000-0000-0000-000000000000",
        description="Owner recorded on images while authentication is not wired in",
    )
    auto_save_generations: bool = Field(
        default=True,
        description="Persist orchestrator results as gallery records",
    )
    strict_mutations: bool = Field(
        default=False,
        description="Propagate update/delete failures instead of reporting success",
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create required directories.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        """Absolute location of the SQLite database file."""
        return self.data_dir / self.database_filename

    @property
    def huggingface_enabled(self) -> bool:
        """Whether a usable Hugging Face token is configured."""
        token = (self.huggingface_api_token or "").strip()
        return bool(token) and token != HUGGINGFACE_TOKEN_PLACEHOLDER


# Global configuration instance
# Loads values from environment variables (PROMPTCANVAS_* prefix) and .env file.
config = PromptCanvasConfig()
