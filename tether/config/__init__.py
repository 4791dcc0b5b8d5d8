"""Application configuration + declarative YAML step loader for tether.

All env vars defined here with TETHER_ prefix.
YAML loaders: load_steps_yaml()
"""

from pydantic_settings import BaseSettings
from typing import Optional

from tether.config.loader import load_steps_yaml
from tether.config.schema import ApiConfigYAML, StepYAML, StepsConfig


class TetherConfig(BaseSettings):
    # ── App ──
    app_name: str = "tether"
    debug: bool = False
    log_level: str = "INFO"

    # ── Store ──
    store_backend: str = "memory"               # "memory" or "redis"
    redis_url: str = "redis://localhost:6379/0"
    store_ttl_seconds: int = 60 * 60 * 24 * 90  # 90 days

    # ── LLM (litellm) ──
    default_llm_model: str = "anthropic/claude-sonnet-4-20250514"
    llm_api_key: Optional[str] = None          # set ANTHROPIC_API_KEY or OPENAI_API_KEY in env
    llm_max_tokens: int = 4096
    llm_temperature: float = 0.1
    llm_timeout_seconds: int = 60

    # ── Self-healing ──
    default_retries: int = 8
    default_loop_max_iters: int = 1000
    max_error_length: int = 1000               # masked errors are truncated to this
    documentation_max_chars: int = 20000       # documentation slice sent to the synthesizer

    # ── Transport ──
    http_timeout_seconds: float = 60.0
    transport_max_retries: int = 2             # 429/5xx/connect retries below the healing loop
    response_size_limit_kb: int = 10240

    # ── Webhooks ──
    webhook_timeout_seconds: float = 10.0

    # ── Server ──
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = {"env_prefix": "TETHER_", "env_file": ".env", "extra": "ignore"}


config = TetherConfig()


__all__ = [
    "TetherConfig",
    "config",
    "load_steps_yaml",
    "ApiConfigYAML",
    "StepYAML",
    "StepsConfig",
]
