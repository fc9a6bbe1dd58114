"""Lightweight persistence for user-configurable settings."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import json
import logging
import os
from pathlib import Path
from typing import Any

from .services.abi_classifier import DEFAULT_SAMPLE_LIMIT

LOG = logging.getLogger(__name__)

CONFIG_ENV_VAR = "BPFGEN_CONFIG"
CONFIG_PATH = Path.home() / ".config" / "bpfgen" / "settings.json"


@dataclass
class GeneratorConfig:
    strict_abi: bool = False
    tail_calls: bool = False
    classify_sample_limit: int = DEFAULT_SAMPLE_LIMIT
    template_dirs: list[str] = field(default_factory=list)


class ConfigManager:
    def __init__(self, path: Path | None = None) -> None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        self.path = path or (Path(env_path) if env_path else CONFIG_PATH)

    def load(self) -> GeneratorConfig:
        if not self.path.exists():
            return GeneratorConfig()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            LOG.warning("ignoring unreadable config %s: %s", self.path, exc)
            return GeneratorConfig()
        if not isinstance(data, dict):
            LOG.warning("ignoring config %s: expected a JSON object", self.path)
            return GeneratorConfig()

        merged: dict[str, Any] = asdict(GeneratorConfig())
        merged.update({k: v for k, v in data.items() if k in merged})
        config = GeneratorConfig(**merged)
        if not isinstance(config.template_dirs, list):
            config.template_dirs = [str(config.template_dirs)]
        return config

    def save(self, config: GeneratorConfig) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(asdict(config), indent=2), encoding="utf-8")
