import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple


@dataclass(frozen=True)
class ProviderConfig:
    api_key: str
    model: str
    temperature: float
    max_tokens: int
    timeout: Tuple[float, float]


@dataclass(frozen=True)
class Settings:
    provider: str = "openai"
    openai_api_key: str = ""
    openai_model: str = "gpt-4.1-mini"
    openrouter_api_key: str = ""
    openrouter_model: str = "openai/gpt-4.1-mini"
    temperature: float = 0.2
    max_tokens: int = 2000
    connect_timeout: float = 3.0
    read_timeout: float = 60.0
    max_text_length: int = 10000
    port: int = 3000
    log_level: str = "INFO"

    def provider_config(self) -> ProviderConfig:
        if self.provider == "openrouter":
            api_key, model = self.openrouter_api_key, self.openrouter_model
        else:
            api_key, model = self.openai_api_key, self.openai_model
        return ProviderConfig(
            api_key=api_key,
            model=model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            timeout=(self.connect_timeout, self.read_timeout),
        )


def _get_str(env: Mapping[str, str], name: str, default: str) -> str:
    value = env.get(name, "").strip()
    return value or default


def _get_number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from None


def _get_log_level(env: Mapping[str, str], name: str, default: str) -> str:
    level = _get_str(env, name, default).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise RuntimeError(f"{name} must be a logging level name, got {level!r}")
    return level


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read the process environment once into an immutable Settings."""
    env = os.environ if environ is None else environ
    defaults = Settings()
    return Settings(
        provider=_get_str(env, "TRANSLATION_PROVIDER", defaults.provider).lower(),
        openai_api_key=env.get("OPENAI_API_KEY", "").strip(),
        openai_model=_get_str(env, "OPENAI_MODEL", defaults.openai_model),
        openrouter_api_key=env.get("OPENROUTER_API_KEY", "").strip(),
        openrouter_model=_get_str(env, "OPENROUTER_MODEL", defaults.openrouter_model),
        temperature=_get_number(env, "TRANSLATION_TEMPERATURE", defaults.temperature, float),
        max_tokens=_get_number(env, "TRANSLATION_MAX_TOKENS", defaults.max_tokens, int),
        connect_timeout=_get_number(
            env, "PROVIDER_CONNECT_TIMEOUT", defaults.connect_timeout, float
        ),
        read_timeout=_get_number(env, "PROVIDER_READ_TIMEOUT", defaults.read_timeout, float),
        max_text_length=_get_number(env, "MAX_TEXT_LENGTH", defaults.max_text_length, int),
        port=_get_number(env, "PORT", defaults.port, int),
        log_level=_get_log_level(env, "LOG_LEVEL", defaults.log_level),
    )
