"""
Settings - User configuration for running workflows.

Settings live in a JSON file, by default
`~/.config/prompt_canvas/settings.json`:

    {
        "provider": {"base_url": "...", "api_key": "...", "timeout_seconds": 300},
        "follow_passthrough_chains": false,
        "log_level": "INFO"
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from prompt_canvas.providers.base import ProviderConfig

logger = logging.getLogger(__name__)


DEFAULT_SETTINGS_PATH = Path.home() / ".config" / "prompt_canvas" / "settings.json"


@dataclass
class CanvasSettings:
    """
    Settings for the workflow runner and its provider.

    Attributes:
        provider: Generation endpoint connection settings
        follow_passthrough_chains: Cross any number of image relays when
            working out dependencies between generators, instead of one
        log_level: Root logging level name
    """
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    follow_passthrough_chains: bool = False
    log_level: str = "INFO"

    @property
    def passthrough_depth(self) -> int | None:
        """Relay depth for dependency extraction; None means unlimited."""
        return None if self.follow_passthrough_chains else 1

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary for serialization."""
        return {
            "provider": self.provider.to_dict(),
            "follow_passthrough_chains": self.follow_passthrough_chains,
            "log_level": self.log_level,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CanvasSettings:
        """Create settings from dictionary."""
        return cls(
            provider=ProviderConfig.from_dict(data.get("provider", {})),
            follow_passthrough_chains=bool(data.get("follow_passthrough_chains", False)),
            log_level=str(data.get("log_level", "INFO")).upper(),
        )


def load_settings(path: Path | None = None) -> CanvasSettings:
    """
    Load settings from disk.

    A missing file gives the defaults. An unreadable or malformed file is
    logged and also gives the defaults.
    """
    path = path or DEFAULT_SETTINGS_PATH
    if not path.exists():
        return CanvasSettings()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("settings root must be an object")
        return CanvasSettings.from_dict(data)
    except (OSError, ValueError) as e:
        logger.warning("Failed to load settings from %s: %s", path, e)
        return CanvasSettings()


def save_settings(settings: CanvasSettings, path: Path | None = None) -> Path:
    """Save settings to disk, creating the directory if needed."""
    path = path or DEFAULT_SETTINGS_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings.to_dict(), f, indent=2)
    return path
