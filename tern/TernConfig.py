"""Analyzer settings, read from the environment like the rest of the toolchain."""

import os
from dataclasses import dataclass

DEFAULT_MAX_RESOLUTION_DEPTH = 256


@dataclass(frozen=True)
class AnalyzerConfig:
    # How many nested deferred resolutions pass 2 may stack before giving up.
    max_resolution_depth: int = DEFAULT_MAX_RESOLUTION_DEPTH

    @classmethod
    def from_env(cls) -> "AnalyzerConfig":
        raw = os.environ.get("TERN_MAX_RESOLUTION_DEPTH")
        if raw is None or not raw.strip():
            return cls()
        try:
            depth = int(raw)
        except ValueError:
            raise ValueError(
                f"TERN_MAX_RESOLUTION_DEPTH must be an integer, got '{raw}'"
            ) from None
        if depth < 1:
            raise ValueError("TERN_MAX_RESOLUTION_DEPTH must be at least 1")
        return cls(max_resolution_depth=depth)
