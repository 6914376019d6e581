"""Fourier Block Noise Reduction over a whole image.

Reduces Poisson noise in scintigraphic images with an adaptive block filter
(Guy, M. J., "Fourier block noise reduction: an adaptive filter for reducing
Poisson noise in scintigraphic images", Nucl Med Commun 29(3), 2008).

The image is tiled into ``block_side`` squares ``block_side**2`` times, each
tiling shifted by a different sub-block phase. Every block is filtered on its
own and all tilings are summed, then averaged, which hides the block seams of
any single tiling.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np

from .block import BlockFilter, BlockStatus, extract_block, push_block
from .config import FBNROptions
from .progress import ProgressThrottle


logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    image: np.ndarray
    max_value: float
    non_convergent: bool = False
    homogeneous: bool = False
    block_counts: Dict[str, int] = field(default_factory=dict)
    iterations: int = 0


def scan_phases(block_side: int):
    """Yield ``(start_x, start_y)`` for each of the ``block_side**2`` tilings."""
    for n in range(block_side):
        start_x = -(block_side - 1 - n)
        for p in range(block_side):
            start_y = -(block_side - 1 - p)
            yield start_x, start_y


def block_origins(block_side: int, width: int, height: int, start_x: int, start_y: int):
    """Yield block origins of one tiling in raster order, rows outermost."""
    for y in range(start_y, height, block_side):
        for x in range(start_x, width, block_side):
            yield x, y


def finalize(accumulator: np.ndarray, passes: int):
    """Average the summed tilings and clamp negative pixels to zero.

    Returns
    -------
    tuple
        ``(image, max_value)``, the maximum being the display ceiling.
    """
    image = accumulator / float(passes)
    np.maximum(image, 0.0, out=image)
    max_value = float(image.max()) if image.size else 0.0
    return image, max_value


def _as_image(image):
    img = np.asarray(image)
    if img.ndim != 2:
        raise ValueError(f"Expected a 2D grayscale image, got shape {img.shape}")
    if img.size == 0:
        raise ValueError("Image is empty")
    img = img.astype(np.float64)
    if not np.all(np.isfinite(img)):
        raise ValueError("Image contains NaN or infinite values")
    return img


def run_fbnr(image: np.ndarray, options: Optional[FBNROptions] = None, progress=None) -> ScanResult:
    """Apply the FBNR filter to a count image.

    Parameters
    ----------
    image: np.ndarray
        2D image of counts (any real dtype).
    options: FBNROptions or None
        Filter settings, defaults when None.
    progress: callable or None
        Called with an integer percentage, 0 first and 100 last, at most once
        per ``options.progress_interval`` seconds in between.

    Returns
    -------
    ScanResult
        Filtered image (float64, >= 0), its maximum, the two warning flags and
        per-status block counts.
    """
    opts = options or FBNROptions()
    img = _as_image(image)
    height, width = img.shape
    side = opts.block_side
    passes = opts.passes

    accumulator = np.zeros_like(img)
    block_filter = BlockFilter(opts)
    counts = Counter()
    iterations = 0

    throttle = ProgressThrottle(progress, opts.progress_interval) if progress is not None else None
    if throttle is not None:
        throttle.update(0, force=True)

    for done, (start_x, start_y) in enumerate(scan_phases(side), start=1):
        if opts.log_blocks:
            logger.info("Pass %d/%d, start x=%d y=%d", done, passes, start_x, start_y)
        for x, y in block_origins(side, width, height, start_x, start_y):
            raw = extract_block(img, x, y, side)
            outcome = block_filter.process(raw, x, y)
            counts[outcome.status.value] += 1
            iterations += outcome.iterations
            if outcome.block is not None:
                push_block(accumulator, outcome.block, x, y)
        if throttle is not None:
            throttle.update(100 * done // passes)

    result_image, max_value = finalize(accumulator, passes)
    result = ScanResult(
        image=result_image,
        max_value=max_value,
        non_convergent=counts[BlockStatus.NON_CONVERGENT.value] > 0,
        homogeneous=counts[BlockStatus.HOMOGENEOUS.value] > 0,
        block_counts={status.value: counts[status.value] for status in BlockStatus},
        iterations=iterations,
    )

    logger.info("FBNR finished: %d blocks, %d iterations, max=%.6g",
                sum(counts.values()), iterations, max_value)
    if result.non_convergent:
        logger.warning("FBNR: %d block(s) did not converge. Try logging mode or more iterations",
                       counts[BlockStatus.NON_CONVERGENT.value])
    if result.homogeneous:
        logger.warning("FBNR: %d block(s) were not filtered due to input homogeneity",
                       counts[BlockStatus.HOMOGENEOUS.value])

    if throttle is not None:
        throttle.finish()
    return result


def denoise(image: np.ndarray, block_side: int = 4, max_iterations: int = 50,
            change_rate: float = 5.0, log_blocks: bool = False) -> np.ndarray:
    """Apply the FBNR filter and return only the filtered image.

    Parameters
    ----------
    image: np.ndarray
        2D image of counts
    block_side: int
        4 or 8
    max_iterations: int
        Iteration cap per block
    change_rate: float
        Step divisor applied after an overshoot
    log_blocks: bool
        Log per-block diagnostics (slow)

    Returns
    -------
    np.ndarray
        Filtered float64 image, same shape, values >= 0
    """
    options = FBNROptions(block_side=block_side, max_iterations=max_iterations,
                          change_rate=change_rate, log_blocks=log_blocks)
    return run_fbnr(image, options).image
