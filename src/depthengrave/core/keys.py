"""Key normalization for settings bundles coming from the UI form."""

from __future__ import annotations

import re

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(key: str) -> str:
    """``"layerBlending"`` -> ``"layer_blending"``; snake_case passes through."""
    return _CAMEL_RE.sub("_", key).lower()


def known_fields(cls, data: dict) -> dict:
    """Snake-case the keys of *data* and drop those *cls* does not declare."""
    fields = cls.__dataclass_fields__
    out = {}
    for k, v in data.items():
        name = snake_case(k)
        if name in fields:
            out[name] = v
    return out
