from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

PROVIDER_ENV = "SPIRAL_NDARRAY_PROVIDER"
STRICT_ENV = "SPIRAL_NDARRAY_STRICT"
ZERO_FILL_ENV = "SPIRAL_NDARRAY_ZERO_FILL"


def parse_bool_env(value: str) -> bool | None:
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return None


@dataclass(frozen=True)
class Settings:
    """Runtime knobs read from ``SPIRAL_NDARRAY_*`` environment variables.

    ``strict`` is ``None`` when left on ``auto``: an explicitly requested
    provider that is missing then falls back to NumPy with a warning.
    """

    provider: str = "auto"
    strict: Optional[bool] = None
    zero_fill: bool = True

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        provider = (env.get(PROVIDER_ENV, "auto") or "auto").strip().lower()
        strict = parse_bool_env(env.get(STRICT_ENV, "auto"))
        zero_fill = parse_bool_env(env.get(ZERO_FILL_ENV, "1"))
        return cls(
            provider=provider,
            strict=strict,
            zero_fill=True if zero_fill is None else zero_fill,
        )


__all__ = ["PROVIDER_ENV", "STRICT_ENV", "ZERO_FILL_ENV", "Settings", "parse_bool_env"]
