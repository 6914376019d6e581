"""Per-block adaptive filtering.

Each block is low-pass filtered in the Hartley domain, shrinking the ring mask
step by step until the variance removed by the filter (the residual) matches
the Poisson noise estimate of the block, i.e. its mean. An overshoot rolls the
mask back to the previous step and divides the step by ``change_rate``.

Blocks are copied out of the image with zero fill and pushed back additively,
both clipped to the image bounds.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .config import FBNROptions
from .rings import RingFilter
from .spectral import block_statistics, forward_transform, inverse_transform


logger = logging.getLogger(__name__)

# raw maxima below this are treated as low-count blocks
LOW_COUNT_MAX = 25
LOW_COUNT_SCALE = 100.0
MAX_SCALE = 1000.0


class BlockStatus(enum.Enum):
    EMPTY = "empty"
    HOMOGENEOUS = "homogeneous"
    CONVERGED = "converged"
    NON_CONVERGENT = "non_convergent"


@dataclass
class BlockState:
    scale: float = 1.0
    initial_variance: float = 0.0
    noise_floor: float = 0.0
    current_variance: float = 0.0
    residual: float = 0.0
    max_value: float = 0.0


@dataclass
class BlockOutcome:
    status: BlockStatus
    # un-scaled block to accumulate, None for empty blocks
    block: Optional[np.ndarray]
    state: BlockState
    iterations: int = 0
    change: float = 0.0


def _overlap(x, y, side, shape):
    """Slices of the block and of the image covered by both."""
    height, width = shape
    x0, x1 = max(x, 0), min(x + side, width)
    y0, y1 = max(y, 0), min(y + side, height)
    if x0 >= x1 or y0 >= y1:
        return None
    block_slice = (slice(y0 - y, y1 - y), slice(x0 - x, x1 - x))
    image_slice = (slice(y0, y1), slice(x0, x1))
    return block_slice, image_slice


def extract_block(image: np.ndarray, x: int, y: int, side: int) -> np.ndarray:
    """Copy the ``side`` square at column ``x``, row ``y``; outside pixels are 0."""
    block = np.zeros((side, side), dtype=np.float64)
    overlap = _overlap(x, y, side, image.shape)
    if overlap is not None:
        block_slice, image_slice = overlap
        block[block_slice] = image[image_slice]
    return block


def push_block(accumulator: np.ndarray, block: np.ndarray, x: int, y: int):
    """Add ``block`` into ``accumulator`` at (x, y), dropping outside pixels."""
    overlap = _overlap(x, y, block.shape[0], accumulator.shape)
    if overlap is not None:
        block_slice, image_slice = overlap
        accumulator[image_slice] += block[block_slice]


def choose_scale(raw: np.ndarray, max_value: Optional[float] = None) -> float:
    """Pick the power of ten that lifts a block out of quantisation noise.

    Low-count blocks start at x100. The scale then grows by 10 while the
    scaled variance is below the scaled mean, up to x1000.
    """
    if max_value is None:
        max_value = float(np.max(raw))
    scale = LOW_COUNT_SCALE if max_value < LOW_COUNT_MAX else 1.0
    stats = block_statistics(raw * scale)
    while stats.variance < stats.mean and scale < MAX_SCALE:
        scale *= 10
        stats = block_statistics(raw * scale)
    return scale


class BlockFilter:
    """Runs the variance-matching loop on one block at a time."""

    def __init__(self, options: Optional[FBNROptions] = None):
        self.options = options or FBNROptions()
        self.ring_filter = RingFilter(self.options.block_side)

    def filter_once(self, block: np.ndarray) -> np.ndarray:
        spectrum = forward_transform(block)
        filtered = spectrum.with_coefficients(self.ring_filter.apply(spectrum.coefficients))
        return inverse_transform(filtered)

    def process(self, raw: np.ndarray, x: int = 0, y: int = 0) -> BlockOutcome:
        """Filter a raw block copied from the image at (x, y).

        Parameters
        ----------
        raw: np.ndarray
            Block pixels as extracted from the image, unscaled.
        x, y: int
            Block origin, only used in log messages.

        Returns
        -------
        BlockOutcome
            Status, the un-scaled block to accumulate (None when the block is
            empty) and the final working state.
        """
        opts = self.options
        state = BlockState(max_value=float(np.max(raw)))
        if not state.max_value > 0:
            return BlockOutcome(BlockStatus.EMPTY, None, state)

        state.scale = choose_scale(raw, state.max_value)
        block = raw * state.scale
        stats = block_statistics(block)
        state.initial_variance = stats.variance
        state.current_variance = stats.variance
        state.noise_floor = stats.mean

        if opts.log_blocks:
            logger.info("Block (%d, %d): variance=%.6g noise=%.6g max=%.6g scale=%g",
                        x, y, state.initial_variance, state.noise_floor,
                        state.max_value, state.scale)

        if state.initial_variance < state.noise_floor:
            # more uniform than Poisson noise alone, leave it as it is
            return BlockOutcome(BlockStatus.HOMOGENEOUS, block / state.scale, state)

        change = opts.first_change
        iterations = 0
        status = None
        try:
            while status is None:
                block = raw * state.scale
                previous = self.ring_filter.snapshot()
                self.ring_filter.shrink(change)
                block = self.filter_once(block)

                state.current_variance = block_statistics(block).variance
                state.residual = state.initial_variance - state.current_variance
                iterations += 1

                if opts.log_blocks:
                    logger.info("Iteration %d: change=%.6g variance=%.6g noise=%.6g residual=%.6g",
                                iterations, change, state.current_variance,
                                state.noise_floor, state.residual)

                if state.residual > state.noise_floor:
                    # overshoot: smaller step, back to the previous mask.
                    # the filtered pixels of this iteration are kept
                    change = change / opts.change_rate
                    self.ring_filter.restore(previous)

                if abs(state.residual - state.noise_floor) < opts.tolerance:
                    status = BlockStatus.CONVERGED
                elif iterations >= opts.max_iterations:
                    status = BlockStatus.NON_CONVERGENT
                    if opts.log_blocks:
                        logger.info("No convergence at x=%d, y=%d", x, y)
        finally:
            self.ring_filter.reset()

        return BlockOutcome(status, block / state.scale, state, iterations, change)
