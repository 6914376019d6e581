"""Ring-shaped low-pass filter masks for the block spectra.

The mask of a block is made of ``block_side`` concentric square rings laid out
on the ``(2*block_side)**2`` spectral array. Ring 0 is the outer perimeter
(highest frequencies once the quadrants are swapped), ring ``block_side - 1``
the 2x2 centre holding the DC term. Each ring carries one gain in [0, 1].

The ring cells are addressed through fixed lookup tables: a clockwise walk of
each perimeter starting at its top-left corner, outer ring first.
"""
import numpy as np


_RING_ROWS = {
    4: (
        0, 0, 0, 0, 0, 0, 0, 0, 1, 2, 3, 4, 5, 6, 7, 7, 7, 7, 7, 7, 7, 7, 6, 5, 4,
        3, 2, 1, 1, 1, 1, 1, 1, 1, 2, 3, 4, 5, 6, 6, 6, 6, 6, 6, 5, 4, 3, 2, 2, 2,
        2, 2, 3, 4, 5, 5, 5, 5, 4, 3, 3, 3, 4, 4,
    ),
    8: (
        0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 1, 2, 3, 4, 5, 6, 7, 8, 9,
        10, 11, 12, 13, 14, 15, 15, 15, 15, 15, 15, 15, 15, 15, 15, 15, 15, 15, 15,
        15, 15, 14, 13, 12, 11, 10, 9, 8, 7, 6, 5, 4, 3, 2, 1, 1, 1, 1, 1, 1, 1, 1,
        1, 1, 1, 1, 1, 1, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14, 14, 14,
        14, 14, 14, 14, 14, 14, 14, 14, 14, 14, 14, 13, 12, 11, 10, 9, 8, 7, 6, 5,
        4, 3, 2, 2, 2, 2, 2, 2, 2, 2, 2, 2, 2, 2, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11,
        12, 13, 13, 13, 13, 13, 13, 13, 13, 13, 13, 13, 13, 12, 11, 10, 9, 8, 7, 6,
        5, 4, 3, 3, 3, 3, 3, 3, 3, 3, 3, 3, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 12,
        12, 12, 12, 12, 12, 12, 12, 12, 11, 10, 9, 8, 7, 6, 5, 4, 4, 4, 4, 4, 4, 4,
        4, 4, 5, 6, 7, 8, 9, 10, 11, 11, 11, 11, 11, 11, 11, 11, 10, 9, 8, 7, 6, 5,
        5, 5, 5, 5, 5, 5, 6, 7, 8, 9, 10, 10, 10, 10, 10, 10, 9, 8, 7, 6, 6, 6, 6,
        6, 7, 8, 9, 9, 9, 9, 8, 7, 7, 7, 8, 8,
    ),
}

_RING_COLS = {
    4: (
        0, 1, 2, 3, 4, 5, 6, 7, 7, 7, 7, 7, 7, 7, 7, 6, 5, 4, 3, 2, 1, 0, 0, 0, 0,
        0, 0, 0, 1, 2, 3, 4, 5, 6, 6, 6, 6, 6, 6, 5, 4, 3, 2, 1, 1, 1, 1, 1, 2, 3,
        4, 5, 5, 5, 5, 4, 3, 2, 2, 2, 3, 4, 4, 3,
    ),
    8: (
        0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14, 15, 15, 15, 15, 15, 15,
        15, 15, 15, 15, 15, 15, 15, 15, 15, 15, 14, 13, 12, 11, 10, 9, 8, 7, 6, 5,
        4, 3, 2, 1, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 1, 2, 3, 4, 5, 6,
        7, 8, 9, 10, 11, 12, 13, 14, 14, 14, 14, 14, 14, 14, 14, 14, 14, 14, 14,
        14, 14, 13, 12, 11, 10, 9, 8, 7, 6, 5, 4, 3, 2, 1, 1, 1, 1, 1, 1, 1, 1, 1,
        1, 1, 1, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 13, 13, 13, 13, 13, 13,
        13, 13, 13, 13, 13, 12, 11, 10, 9, 8, 7, 6, 5, 4, 3, 2, 2, 2, 2, 2, 2, 2,
        2, 2, 2, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 12, 12, 12, 12, 12, 12, 12,
        12, 12, 11, 10, 9, 8, 7, 6, 5, 4, 3, 3, 3, 3, 3, 3, 3, 3, 3, 4, 5, 6, 7, 8,
        9, 10, 11, 11, 11, 11, 11, 11, 11, 11, 10, 9, 8, 7, 6, 5, 4, 4, 4, 4, 4, 4,
        4, 5, 6, 7, 8, 9, 10, 10, 10, 10, 10, 10, 9, 8, 7, 6, 5, 5, 5, 5, 5, 6, 7,
        8, 9, 9, 9, 9, 8, 7, 6, 6, 6, 7, 8, 8, 7,
    ),
}

SUPPORTED_BLOCK_SIDES = tuple(sorted(_RING_ROWS))


def _check_block_side(block_side):
    if block_side not in _RING_ROWS:
        raise ValueError(
            f"Unsupported block side: {block_side} (expected one of {SUPPORTED_BLOCK_SIDES})")


def lookup_table(block_side: int):
    """Return the ``(rows, cols)`` ring traversal for a block size.

    Parameters
    ----------
    block_side: int
        Side of the image block, 4 or 8.

    Returns
    -------
    tuple of np.ndarray
        Two read-only int arrays of length ``(2*block_side)**2``.
    """
    _check_block_side(block_side)
    rows = np.array(_RING_ROWS[block_side], dtype=np.intp)
    cols = np.array(_RING_COLS[block_side], dtype=np.intp)
    rows.setflags(write=False)
    cols.setflags(write=False)
    return rows, cols


def ring_sizes(block_side: int) -> np.ndarray:
    """Number of cells in each ring, outermost first."""
    _check_block_side(block_side)
    perimeter_sides = 2 * block_side - 1 - 2 * np.arange(block_side)
    return 4 * perimeter_sides


def ring_index(block_side: int) -> np.ndarray:
    """Ring number of every entry of the lookup table."""
    return np.repeat(np.arange(block_side), ring_sizes(block_side))


def all_pass(block_side: int) -> np.ndarray:
    _check_block_side(block_side)
    return np.ones(block_side, dtype=np.float64)


def shrink(gains: np.ndarray, budget: float) -> np.ndarray:
    """Remove ``budget`` of gain from the outer rings inwards.

    The budget is taken from ring 0 first. When a ring would go negative it is
    set to zero and the remainder carries over to the next ring inwards. Any
    budget left past the innermost ring is dropped.

    Returns a new array; ``gains`` itself is not modified.
    """
    out = np.array(gains, dtype=np.float64)
    for ring in range(out.size):
        if budget <= 0:
            break
        remaining = out[ring] - budget
        if remaining < 0:
            budget = abs(remaining)
            out[ring] = 0.0
        else:
            out[ring] = remaining
            budget = 0.0
    return out


class RingFilter:
    """Per-ring gains of the low-pass mask of one block.

    The gains array is replaced, never edited, so a snapshot taken before a
    shrink stays valid and can be restored as is.
    """

    def __init__(self, block_side: int):
        self.block_side = block_side
        self.rows, self.cols = lookup_table(block_side)
        self._ring_of_entry = ring_index(block_side)
        self.gains = all_pass(block_side)

    @property
    def size(self):
        return 2 * self.block_side

    def reset(self):
        self.gains = all_pass(self.block_side)

    def snapshot(self) -> np.ndarray:
        return self.gains

    def restore(self, gains: np.ndarray):
        self.gains = gains

    def shrink(self, budget: float):
        self.gains = shrink(self.gains, budget)

    def mask(self) -> np.ndarray:
        """Expand the ring gains to the centred ``(2b, 2b)`` mask."""
        mask = np.empty((self.size, self.size), dtype=np.float64)
        mask[self.rows, self.cols] = self.gains[self._ring_of_entry]
        return mask

    def apply(self, coefficients: np.ndarray) -> np.ndarray:
        """Multiply spectral coefficients by the quadrant-swapped mask.

        The transform keeps its DC term in the corner, while the rings are
        centred, so top-left/bottom-right and top-right/bottom-left quadrants
        of the mask are exchanged first.
        """
        if coefficients.shape != (self.size, self.size):
            raise ValueError(
                f"Spectrum shape {coefficients.shape} does not match a "
                f"{self.block_side}x{self.block_side} block filter")
        return coefficients * np.fft.fftshift(self.mask())
