"""Filter options and their validation.

Options usually come from the ``fbnr`` section of ``config.yaml``::

    fbnr:
      block_side: 4        # 4 or 8 (also "4x4" / "8x8")
      max_iterations: 50
      change_rate: 5
      logging: false       # per-block diagnostics (slow)
"""
from dataclasses import dataclass
from typing import Optional

from .rings import SUPPORTED_BLOCK_SIDES


def parse_block_side(value) -> int:
    """Accept ``4``, ``"4"`` or ``"4x4"`` style block sizes."""
    if isinstance(value, str):
        text = value.strip().lower()
        if "x" in text:
            first, _, second = text.partition("x")
            if first != second:
                raise ValueError(f"Blocks must be square, got '{value}'")
            text = first
        value = text
    try:
        side = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid block size: {value!r}") from None
    if side not in SUPPORTED_BLOCK_SIDES:
        raise ValueError(
            f"Unsupported block size: {side} (expected one of {SUPPORTED_BLOCK_SIDES})")
    return side


@dataclass
class FBNROptions:
    block_side: int = 4
    max_iterations: int = 50
    change_rate: float = 5.0
    log_blocks: bool = False
    # convergence window on |residual - noise|
    tolerance: float = 0.1
    # first shrink step, 1/block_side when unset
    initial_change: Optional[float] = None
    # seconds between progress notifications
    progress_interval: float = 1.0

    def __post_init__(self):
        self.block_side = parse_block_side(self.block_side)
        try:
            whole = int(self.max_iterations)
        except (TypeError, ValueError):
            whole = None
        if isinstance(self.max_iterations, bool) or whole != self.max_iterations:
            raise ValueError(f"max_iterations must be an integer, got {self.max_iterations!r}")
        self.max_iterations = int(self.max_iterations)
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
        self.change_rate = float(self.change_rate)
        if not self.change_rate >= 1.0:
            raise ValueError(f"change_rate must be >= 1, got {self.change_rate}")
        self.log_blocks = bool(self.log_blocks)
        self.tolerance = float(self.tolerance)
        if not self.tolerance >= 0.0:
            raise ValueError(f"tolerance must be >= 0, got {self.tolerance}")
        if self.initial_change is not None:
            self.initial_change = float(self.initial_change)
            if not self.initial_change > 0.0:
                raise ValueError(f"initial_change must be > 0, got {self.initial_change}")
        self.progress_interval = float(self.progress_interval)
        if not self.progress_interval >= 0.0:
            raise ValueError(f"progress_interval must be >= 0, got {self.progress_interval}")

    @property
    def passes(self) -> int:
        return self.block_side ** 2

    @property
    def first_change(self) -> float:
        if self.initial_change is None:
            return 1.0 / self.block_side
        return self.initial_change

    @classmethod
    def from_config(cls, cfg: dict) -> "FBNROptions":
        """Build options from a config mapping (the ``fbnr`` YAML section)."""
        cfg = cfg or {}
        return cls(
            block_side=cfg.get("block_side", 4),
            max_iterations=cfg.get("max_iterations", 50),
            change_rate=cfg.get("change_rate", 5.0),
            log_blocks=cfg.get("logging", False),
            tolerance=cfg.get("tolerance", 0.1),
            initial_change=cfg.get("initial_change", None),
            progress_interval=cfg.get("progress_interval", 1.0),
        )
