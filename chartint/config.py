# chartint/config.py
"""
Engine configuration and environment settings.

Environment (a `.env` file is honoured):
    CHARTINT_LOG_LEVEL    log level for `configure_logging` (default WARNING)
    CHARTINT_CONFIG_PATH  optional JSON file with `strategies`, `extensions`, `version`
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

# =============================================================================
# CONFIGURATION
# =============================================================================

LOG_LEVEL = os.getenv("CHARTINT_LOG_LEVEL", "WARNING").strip().upper() or "WARNING"
CONFIG_PATH = os.getenv("CHARTINT_CONFIG_PATH", "").strip()

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


@dataclass(frozen=True)
class EngineConfig:
    """
    Opaque, all-optional configuration.

    `strategies` tunes the built-in behaviour (tie-break order, competition,
    hit conditions); `extensions` swaps rule sets. The engine default-merges
    every field, so an empty config is valid.
    """
    strategies: Mapping[str, Any] = field(default_factory=dict)
    extensions: Mapping[str, Any] = field(default_factory=dict)
    version: Optional[str] = None

    @cached_property
    def config_id(self) -> str:
        """Explicit version, else a content hash (equal contents -> equal id)."""
        if self.version:
            return str(self.version)
        canonical = json.dumps(
            _canonical({"strategies": self.strategies, "extensions": self.extensions}),
            sort_keys=True,
            separators=(",", ":"),
            default=_json_default,
        )
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    @classmethod
    def from_dict(cls, raw: Any) -> "EngineConfig":
        if not isinstance(raw, Mapping):
            return cls()
        strategies = raw.get("strategies")
        extensions = raw.get("extensions")
        version = raw.get("version")
        return cls(
            strategies=dict(strategies) if isinstance(strategies, Mapping) else {},
            extensions=dict(extensions) if isinstance(extensions, Mapping) else {},
            version=str(version) if isinstance(version, (str, int)) and not isinstance(version, bool) else None,
        )


def _canonical(obj: Any) -> Any:
    """Mapping keys as strings so mixed-type keys still sort."""
    if isinstance(obj, Mapping):
        return {str(k): _canonical(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_canonical(v) for v in obj]
    return obj


def _json_default(obj: Any) -> Any:
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return repr(obj)


def load_engine_config(path: Optional[str] = None) -> EngineConfig:
    """
    Read a config file (`path`, else CHARTINT_CONFIG_PATH).

    No path -> default config. An unreadable or non-object file also yields
    the default config, with a warning.
    """
    path = path or CONFIG_PATH
    if not path:
        return EngineConfig()
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Could not read engine config %s: %s", path, e)
        return EngineConfig()
    if not isinstance(raw, Mapping):
        logger.warning("Engine config %s is not a JSON object; using defaults", path)
        return EngineConfig()
    return EngineConfig.from_dict(raw)


def configure_logging(level: Optional[str] = None) -> None:
    """Single stream handler on the root logger (CLI use; the library installs none)."""
    name = (level or LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.WARNING),
        format=LOG_FORMAT,
        force=True,
    )
