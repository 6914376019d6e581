"""Block statistics and the real-valued 2D spectral transform.

The transform is the discrete Hartley transform, which maps a real block to a
real spectrum so a real mask can be applied element-wise. It is computed from
the FFT as ``Re(F) - Im(F)`` and is its own inverse up to a ``1/N`` factor.

Blocks are mirror-padded into a larger square canvas before transforming.
Zero padding would put a hard edge around the block, i.e. spurious
high-frequency energy that the adaptive filter would then try to remove.
"""
from collections import namedtuple
from dataclasses import dataclass

import numpy as np
from scipy import fft


BlockStatistics = namedtuple("BlockStatistics", ["mean", "variance", "max"])


def block_statistics(block: np.ndarray) -> BlockStatistics:
    """Mean, population variance and maximum of a block."""
    return BlockStatistics(float(np.mean(block)), float(np.var(block)), float(np.max(block)))


def working_size(block_side: int) -> int:
    """Smallest power of two, at least 2, that is >= 1.5 * block_side."""
    size = 2
    while size < 1.5 * block_side:
        size *= 2
    return size


@dataclass
class Spectrum:
    coefficients: np.ndarray
    offset: tuple
    shape: tuple

    def with_coefficients(self, coefficients: np.ndarray) -> "Spectrum":
        return Spectrum(coefficients, self.offset, self.shape)


def _hartley2(arr):
    f = fft.fft2(arr)
    return f.real - f.imag


def forward_transform(block: np.ndarray) -> Spectrum:
    """Mirror-pad ``block`` to the working size and Hartley-transform it.

    Parameters
    ----------
    block: np.ndarray
        2D float block.

    Returns
    -------
    Spectrum
        Coefficients of the padded canvas plus the offset and shape needed to
        crop the block back out after the inverse transform.
    """
    rows, cols = block.shape
    size = working_size(max(rows, cols))
    top = int(np.floor((size - rows) / 2.0 + 0.5))
    left = int(np.floor((size - cols) / 2.0 + 0.5))
    canvas = np.pad(block.astype(np.float64),
                    ((top, size - rows - top), (left, size - cols - left)),
                    mode="symmetric")
    return Spectrum(_hartley2(canvas), (top, left), (rows, cols))


def inverse_transform(spectrum: Spectrum) -> np.ndarray:
    """Invert :func:`forward_transform` and crop to the original block."""
    coefficients = spectrum.coefficients
    canvas = _hartley2(coefficients) / coefficients.size
    top, left = spectrum.offset
    rows, cols = spectrum.shape
    return canvas[top:top + rows, left:left + cols].copy()
