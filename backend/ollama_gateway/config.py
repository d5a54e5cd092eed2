import logging
import os
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://ollama:11434"
DEFAULT_MODEL = "gpt-oss:20b"
DEFAULT_TIMEOUT = 120.0  # seconds
DEFAULT_PROVIDER = "ollama"

# Go-style durations: "90s", "1m30s", "500ms", "1.5h", "-2m"
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
# largest duration an int64 nanosecond count can hold
MAX_DURATION = (2**63 - 1) * 1e-9


def getenv(key: str, default: str) -> str:
    value = os.getenv(key, "")
    return value if value else default


def parse_model_list(value: str) -> Tuple[str, ...]:
    """Split a comma separated list, dropping blanks and repeats (first one wins)."""
    models = []
    for part in (value or "").split(","):
        name = part.strip()
        if name and name not in models:
            models.append(name)
    return tuple(models)


def parse_duration(value: str) -> float:
    """Parse a Go-style duration string into seconds."""
    text = value
    sign = 1.0
    if text[:1] in ("+", "-"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return 0.0
    if not text:
        raise ValueError(f"invalid duration {value!r}")

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if total > MAX_DURATION:
        raise ValueError(f"invalid duration {value!r}: out of range")
    return sign * total


def parse_timeout(value: str) -> float:
    if not (value or "").strip():
        return DEFAULT_TIMEOUT

    try:
        seconds = parse_duration(value)
    except ValueError as e:
        logger.warning("invalid OLLAMA_TIMEOUT %r: %s; using default %gs", value, e, DEFAULT_TIMEOUT)
        return DEFAULT_TIMEOUT
    if seconds <= 0:
        logger.warning("invalid OLLAMA_TIMEOUT %r: must be >0; using default %gs", value, DEFAULT_TIMEOUT)
        return DEFAULT_TIMEOUT
    return seconds


def choose_default_model(base: str, allowed: Iterable[str]) -> str:
    allowed = tuple(allowed)
    trimmed = (base or "").strip()
    if not allowed:
        return trimmed
    if trimmed and trimmed in allowed:
        return trimmed
    return allowed[0]


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, built once at startup and never mutated."""

    base_url: str = DEFAULT_BASE_URL
    default_model: str = DEFAULT_MODEL
    allowed_models: Tuple[str, ...] = ()
    timeout: float = DEFAULT_TIMEOUT
    provider: str = DEFAULT_PROVIDER

    @classmethod
    def create(
        cls,
        base_url: str = DEFAULT_BASE_URL,
        default_model: str = DEFAULT_MODEL,
        allowed_models: Iterable[str] = (),
        timeout: Optional[float] = None,
        provider: str = DEFAULT_PROVIDER,
    ) -> "Settings":
        allowed = parse_model_list(",".join(allowed_models))
        model = choose_default_model(default_model, allowed)
        if allowed and model != (default_model or "").strip():
            logger.warning(
                "default model %r not in OLLAMA_ALLOWED_MODELS; using %r instead",
                default_model,
                model,
            )
        if timeout is None or timeout <= 0:
            timeout = DEFAULT_TIMEOUT
        return cls(
            base_url=base_url.rstrip("/"),
            default_model=model,
            allowed_models=allowed,
            timeout=timeout,
            provider=provider.strip().lower(),
        )

    @classmethod
    def from_env(cls) -> "Settings":
        return cls.create(
            base_url=getenv("OLLAMA_URL", DEFAULT_BASE_URL),
            default_model=getenv("OLLAMA_MODEL", DEFAULT_MODEL),
            allowed_models=parse_model_list(getenv("OLLAMA_ALLOWED_MODELS", "")),
            timeout=parse_timeout(getenv("OLLAMA_TIMEOUT", "")),
            provider=getenv("CHAT_PROVIDER", DEFAULT_PROVIDER),
        )

    def is_allowed(self, model: str) -> bool:
        return not self.allowed_models or model in self.allowed_models
