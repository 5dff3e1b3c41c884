"""Environment-driven configuration."""

import os
from dataclasses import dataclass, field


def _env_float(name: str) -> float | None:
    value = os.getenv(name)
    return float(value) if value else None


@dataclass
class ModelConfig:
    """Configuration for the chat model."""

    model: str = field(default_factory=lambda: os.getenv("TOOLGATE_MODEL", "claude-3-5-sonnet-20241022"))
    temperature: float = 0.0
    max_tokens: int = 4096
    max_retries: int = 3
    recursion_limit: int = 10

    requests_per_minute: int = 50
    tokens_per_minute: int = 40_000

    @property
    def api_key(self) -> str | None:
        """API key for the model provider, read at call time."""
        return os.getenv("ANTHROPIC_API_KEY")


@dataclass
class ToolSettings:
    """Endpoints and credentials used by the tool catalog."""

    webhook_url: str = field(default_factory=lambda: os.getenv("GOOGLE_CHAT_WEBHOOK_URL", ""))
    worker_url: str = field(default_factory=lambda: os.getenv("WORKER_URL", ""))
    origin_worker_url: str = field(default_factory=lambda: os.getenv("WORKER_ORIGIN_URL", ""))
    image_api_url: str = field(default_factory=lambda: os.getenv("IMAGE_API_URL", ""))
    public_bucket_url: str = field(default_factory=lambda: os.getenv("PUBLIC_BUCKET_URL", "https://r2.zxc.co.in"))
    bucket_upload_url: str = field(default_factory=lambda: os.getenv("BUCKET_UPLOAD_URL", ""))
    bucket_upload_token: str = field(default_factory=lambda: os.getenv("BUCKET_UPLOAD_TOKEN", ""))
    pokemon_api_url: str = "https://pokeapi.co/api/v2/pokemon"

    cloudflare_api_url: str = "https://api.cloudflare.com/client/v4"
    cloudflare_zone_id: str = field(default_factory=lambda: os.getenv("CLOUDFLARE_ZONE_ID", ""))
    cloudflare_ruleset_id: str = field(default_factory=lambda: os.getenv("CLOUDFLARE_RULESET_ID", ""))
    cloudflare_api_token: str = field(default_factory=lambda: os.getenv("CLOUDFLARE_API_TOKEN", ""))

    http_timeout: float = 30.0
    # Seconds before an approved tool execution is abandoned and left pending
    resolver_timeout: float | None = field(default_factory=lambda: _env_float("TOOLGATE_RESOLVER_TIMEOUT"))
