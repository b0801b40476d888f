"""
Runtime settings.

Settings are resolved in three layers: built-in defaults, an optional
YAML file and finally environment variables (a ``.env`` file in the
working directory is loaded first via python-dotenv).  Recognised
environment variables::

    HIREFLOW_CONCURRENCY     maximum simultaneous scoring calls
    HIREFLOW_TIMEOUT         per-résumé timeout in seconds
    HIREFLOW_RETRY_DELAYS    comma separated retry delays, e.g. "1,2"
    HIREFLOW_BUFFER_SIZE     progress stream buffer depth
    LLM_PROVIDER             openai | gemini | keyword
    OPENAI_MODEL / GEMINI_MODEL

API keys are not stored on ``Settings``; providers read them directly.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from typing import Dict, Optional, Tuple

import yaml  # type: ignore
from dotenv import load_dotenv

from .errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 3
DEFAULT_TIMEOUT = 60.0
DEFAULT_BUFFER_SIZE = 16


@dataclass
class Settings:
    """Tunable parameters of the batch pipeline."""

    concurrency: int = DEFAULT_CONCURRENCY
    timeout: float = DEFAULT_TIMEOUT
    retry_delays: Tuple[float, ...] = (1.0, 2.0)
    buffer_size: int = DEFAULT_BUFFER_SIZE
    provider: Optional[str] = None
    model: Optional[str] = None
    extra: Dict[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ValidationError("concurrency must be at least 1")
        if self.timeout <= 0:
            raise ValidationError("timeout must be positive")
        if self.buffer_size < 1:
            raise ValidationError("buffer_size must be at least 1")
        self.retry_delays = tuple(float(d) for d in self.retry_delays)


def _parse_delays(raw: object) -> Tuple[float, ...]:
    if raw is None or raw == "":
        return ()
    if isinstance(raw, str):
        return tuple(float(part) for part in raw.split(",") if part.strip())
    if isinstance(raw, (int, float)):
        return (float(raw),)
    return tuple(float(part) for part in raw)  # type: ignore[union-attr]


def _load_yaml(path: str) -> Dict[str, object]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValidationError(f"Config file {path} must contain a mapping")
    # Allow the settings to live under a top-level ``batch`` key.
    section = data.get("batch", data)
    return dict(section) if isinstance(section, dict) else {}


def load_settings(path: Optional[str] = None, *, use_env: bool = True) -> Settings:
    """Build :class:`Settings` from an optional YAML file and the environment.

    Args:
        path: Optional YAML file.  Keys mirror the ``Settings`` fields.
        use_env: Whether ``.env`` and ``HIREFLOW_*`` variables are applied.

    Returns:
        A validated ``Settings`` instance.
    """
    values: Dict[str, object] = {}
    if path:
        values.update(_load_yaml(path))
        logger.debug("Loaded settings from %s", path)

    if use_env:
        load_dotenv()
        env_map = {
            "concurrency": os.getenv("HIREFLOW_CONCURRENCY"),
            "timeout": os.getenv("HIREFLOW_TIMEOUT"),
            "retry_delays": os.getenv("HIREFLOW_RETRY_DELAYS"),
            "buffer_size": os.getenv("HIREFLOW_BUFFER_SIZE"),
            "provider": os.getenv("LLM_PROVIDER"),
        }
        for key, raw in env_map.items():
            if raw:
                values[key] = raw

    known = {f.name for f in fields(Settings)} - {"extra"}
    extra = {k: v for k, v in values.items() if k not in known}
    try:
        settings = Settings(
            concurrency=int(values.get("concurrency", DEFAULT_CONCURRENCY)),  # type: ignore[arg-type]
            timeout=float(values.get("timeout", DEFAULT_TIMEOUT)),  # type: ignore[arg-type]
            retry_delays=_parse_delays(values.get("retry_delays", (1.0, 2.0))),
            buffer_size=int(values.get("buffer_size", DEFAULT_BUFFER_SIZE)),  # type: ignore[arg-type]
            provider=(str(values["provider"]).lower() if values.get("provider") else None),
            model=(str(values["model"]) if values.get("model") else None),
            extra=extra,
        )
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid settings: {exc}") from exc
    logger.debug("Resolved settings: %s", settings)
    return settings
