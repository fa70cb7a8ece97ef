"""
Centralized configuration with environment variable overrides.

All matching thresholds, retry limits, endpoints, and model settings are
configurable here. Nothing is hardcoded in resolver, matcher, or queue logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class ModelConfig:
    """Inference and voice pipeline model settings."""

    llm_model: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    llm_temperature: float = _safe_float("LLM_TEMPERATURE", "0.1")
    llm_max_tokens: int = _safe_int("LLM_MAX_TOKENS", "1000")
    llm_api_key: str = os.getenv("OPENAI_API_KEY", "")
    llm_timeout_sec: float = _safe_float("LLM_TIMEOUT", "20.0")
    stt_model: str = os.getenv("STT_MODEL", "nova-3")
    stt_language: str = os.getenv("STT_LANGUAGE", "en")
    tts_model: str = os.getenv("TTS_MODEL", "sonic-2")
    tts_voice_id: str = os.getenv("TTS_VOICE_ID", "79a125e8-cd45-4c13-8a67-188112f4dd22")


@dataclass(frozen=True)
class MatchingConfig:
    """Product and supplier ranking thresholds."""

    max_catalogue_entries: int = _safe_int("MAX_CATALOGUE_ENTRIES", "100")
    min_inference_score: float = _safe_float("MIN_INFERENCE_SCORE", "0.5")
    keyword_min_token_length: int = _safe_int("KEYWORD_MIN_TOKEN_LENGTH", "3")
    keyword_token_weight: float = _safe_float("KEYWORD_TOKEN_WEIGHT", "0.3")
    tie_break_window: float = _safe_float("TIE_BREAK_WINDOW", "0.1")
    unranked_supplier_rank: int = _safe_int("UNRANKED_SUPPLIER_RANK", "999")
    max_results_per_item: int = _safe_int("MAX_RESULTS_PER_ITEM", "8")
    max_supplier_suggestions: int = _safe_int("MAX_SUPPLIER_SUGGESTIONS", "3")


@dataclass(frozen=True)
class SyncConfig:
    """Offline order queue and submission endpoint settings."""

    max_retries: int = _safe_int("SYNC_MAX_RETRIES", "5")
    retry_interval_sec: float = _safe_float("SYNC_RETRY_INTERVAL", "30.0")
    order_endpoint_url: str = os.getenv("ORDER_ENDPOINT_URL", "http://localhost:5173/api/orders")
    request_timeout_sec: float = _safe_float("ORDER_REQUEST_TIMEOUT", "10.0")
    queue_storage_path: str = os.getenv("OFFLINE_QUEUE_PATH", ".data/offline_queue.json")


@dataclass(frozen=True)
class OrderingConfig:
    """Worker-facing ordering session settings."""

    currency_label: str = os.getenv("CURRENCY_LABEL", "Swiss francs")
    cart_storage_path: str = os.getenv("CART_STORAGE_PATH", ".data/cart.json")
    max_spoken_chars: int = _safe_int("MAX_SPOKEN_CHARS", "1000")
    max_favorites: int = _safe_int("MAX_FAVORITES", "10")
    order_history_limit: int = _safe_int("ORDER_HISTORY_LIMIT", "5")
    default_project_id: str = os.getenv("DEFAULT_PROJECT_ID", "proj-demo")
    default_user_id: str = os.getenv("DEFAULT_USER_ID", "worker-demo")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    model: ModelConfig = field(default_factory=ModelConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    ordering: OrderingConfig = field(default_factory=OrderingConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    agent_name: str = os.getenv("AGENT_NAME", "site-voice-ordering")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if not 0.0 <= config.model.llm_temperature <= 2.0:
        raise ValueError(
            f"LLM_TEMPERATURE must be between 0.0 and 2.0, got {config.model.llm_temperature}"
        )
    if config.model.llm_max_tokens < 1:
        raise ValueError(f"LLM_MAX_TOKENS must be >= 1, got {config.model.llm_max_tokens}")
    if config.model.llm_timeout_sec <= 0:
        raise ValueError(f"LLM_TIMEOUT must be > 0, got {config.model.llm_timeout_sec}")

    matching = config.matching
    if matching.max_catalogue_entries < 1:
        raise ValueError(
            f"MAX_CATALOGUE_ENTRIES must be >= 1, got {matching.max_catalogue_entries}"
        )
    for name, value in [
        ("MIN_INFERENCE_SCORE", matching.min_inference_score),
        ("KEYWORD_TOKEN_WEIGHT", matching.keyword_token_weight),
        ("TIE_BREAK_WINDOW", matching.tie_break_window),
    ]:
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"{name} must be between 0.0 and 1.0, got {value}")
    if matching.keyword_min_token_length < 1:
        raise ValueError(
            "KEYWORD_MIN_TOKEN_LENGTH must be >= 1, "
            f"got {matching.keyword_min_token_length}"
        )
    if matching.max_results_per_item < 1:
        raise ValueError(
            f"MAX_RESULTS_PER_ITEM must be >= 1, got {matching.max_results_per_item}"
        )
    if matching.max_supplier_suggestions < 0:
        raise ValueError(
            f"MAX_SUPPLIER_SUGGESTIONS must be >= 0, got {matching.max_supplier_suggestions}"
        )

    if config.sync.max_retries < 1:
        raise ValueError(f"SYNC_MAX_RETRIES must be >= 1, got {config.sync.max_retries}")
    if config.sync.retry_interval_sec <= 0:
        raise ValueError(
            f"SYNC_RETRY_INTERVAL must be > 0, got {config.sync.retry_interval_sec}"
        )
    if config.sync.request_timeout_sec <= 0:
        raise ValueError(
            f"ORDER_REQUEST_TIMEOUT must be > 0, got {config.sync.request_timeout_sec}"
        )

    if config.ordering.max_spoken_chars < 1:
        raise ValueError(
            f"MAX_SPOKEN_CHARS must be >= 1, got {config.ordering.max_spoken_chars}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info(
        "Configuration loaded for '%s' (inference %s)",
        config.agent_name,
        "configured" if config.model.llm_api_key else "not configured",
    )
    return config


# Singleton instance
settings = load_config()
