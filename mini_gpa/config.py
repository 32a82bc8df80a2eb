# mini_gpa/config.py
"""
Engine configuration and defaults.
"""

import copy
from dataclasses import dataclass
from typing import Optional


@dataclass
class EngineConfig:
    """Global numerical configuration shared by the whole engine."""

    # Single precision used for every "is this negligible?" decision:
    # kernel pivots, Gram-Schmidt acceptance, Cholesky pivots, weights.
    absolute_precision: float = 1e-10

    # Thread pool size for parallel assembly (None = one thread per CPU)
    max_workers: Optional[int] = None

    def __post_init__(self):
        if not self.absolute_precision > 0.0:
            raise ValueError(
                f"absolute_precision must be positive, got {self.absolute_precision}"
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")


# Global config instance
CONFIG = EngineConfig()


def get_config() -> EngineConfig:
    """Return a copy of the active configuration."""
    return copy.deepcopy(CONFIG)


def set_config(config: EngineConfig) -> None:
    """Replace the active configuration (the argument is copied)."""
    global CONFIG
    CONFIG = copy.deepcopy(config)


def absolute_precision() -> float:
    return CONFIG.absolute_precision
