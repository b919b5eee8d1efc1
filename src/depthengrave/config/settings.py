"""Application preferences (persisted to disk)."""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict
from pathlib import Path


@dataclass
class AppSettings:
    """User preferences, serialized to ~/.depthengrave/settings.json."""

    default_laser: str = "Raycus 50W Fiber"
    max_workers: int = 0        # 0 = one per CPU
    log_level: str = "WARNING"
    last_image_dir: str = ""
    last_output_dir: str = ""

    @staticmethod
    def _path() -> Path:
        return Path.home() / ".depthengrave" / "settings.json"

    def save(self) -> None:
        p = self._path()
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(asdict(self), indent=2))

    @classmethod
    def load(cls) -> "AppSettings":
        p = cls._path()
        if p.exists():
            data = json.loads(p.read_text())
            return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
        return cls()
