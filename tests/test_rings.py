import numpy as np
import pytest

from fbnr.rings import RingFilter, all_pass, lookup_table, ring_index, ring_sizes, shrink


@pytest.mark.parametrize("block_side", [4, 8])
def test_lookup_table_walks_each_ring_once(block_side):
    rows, cols = lookup_table(block_side)
    n = 2 * block_side
    assert len(rows) == len(cols) == n * n
    # every cell of the spectral array appears exactly once
    assert len(set(zip(rows.tolist(), cols.tolist()))) == n * n
    # entries of ring r lie on the r-th square perimeter
    depth = np.minimum(np.minimum(rows, cols), np.minimum(n - 1 - rows, n - 1 - cols))
    assert np.array_equal(depth, ring_index(block_side))


@pytest.mark.parametrize("block_side", [4, 8])
def test_lookup_table_is_clockwise_walk(block_side):
    rows, cols = lookup_table(block_side)
    steps = np.abs(np.diff(rows)) + np.abs(np.diff(cols))
    assert np.all(steps == 1)
    # starts at the top-left corner heading right
    assert (rows[0], cols[0]) == (0, 0)
    assert (rows[1], cols[1]) == (0, 1)


def test_lookup_table_is_read_only():
    rows, _ = lookup_table(4)
    with pytest.raises(ValueError):
        rows[0] = 3


def test_unsupported_block_side():
    with pytest.raises(ValueError):
        lookup_table(6)


def test_ring_sizes():
    assert ring_sizes(4).tolist() == [28, 20, 12, 4]
    assert ring_sizes(8).sum() == 256


def test_shrink_zero_budget_is_identity():
    gains = np.array([0.5, 0.75, 1.0, 1.0])
    assert np.array_equal(shrink(gains, 0.0), gains)


def test_shrink_within_outer_ring():
    out = shrink(all_pass(4), 0.25)
    assert out.tolist() == [0.75, 1.0, 1.0, 1.0]


def test_shrink_carries_remainder_inwards():
    out = shrink(np.array([0.25, 1.0, 1.0, 1.0]), 0.5)
    np.testing.assert_allclose(out, [0.0, 0.75, 1.0, 1.0])
    # an empty ring passes the whole budget on
    out = shrink(np.array([0.0, 0.5, 1.0, 1.0]), 0.75)
    np.testing.assert_allclose(out, [0.0, 0.0, 0.75, 1.0])


def test_shrink_saturates_and_drops_leftover_budget():
    out = shrink(all_pass(4), 10.0)
    assert out.tolist() == [0.0, 0.0, 0.0, 0.0]


def test_shrink_does_not_modify_input():
    gains = all_pass(4)
    shrink(gains, 0.5)
    assert gains.tolist() == [1.0, 1.0, 1.0, 1.0]


def test_repeated_shrinks_never_increase_gains():
    gains = all_pass(8)
    history = [gains]
    for budget in [0.125, 0.5, 0.01, 0.3, 0.0, 1.7, 0.2]:
        gains = shrink(gains, budget)
        history.append(gains)
    for before, after in zip(history, history[1:]):
        assert np.all(after <= before)
    ring0 = [g[0] for g in history]
    assert all(b <= a for a, b in zip(ring0, ring0[1:]))


def test_mask_from_gains():
    rf = RingFilter(4)
    rf.restore(np.array([0.0, 0.25, 0.5, 1.0]))
    mask = rf.mask()
    assert mask.shape == (8, 8)
    assert np.all(mask[0, :] == 0.0)
    assert np.all(mask[:, 7] == 0.0)
    assert mask[1, 1] == 0.25
    assert mask[2, 5] == 0.5
    assert np.all(mask[3:5, 3:5] == 1.0)


def test_apply_swaps_quadrants_without_touching_gains():
    rf = RingFilter(4)
    rf.shrink(1.5)
    gains_before = rf.gains.copy()
    coefficients = np.ones((8, 8))
    out = rf.apply(coefficients)
    # corner of the transform (DC) gets the innermost ring's gain
    assert out[0, 0] == 1.0
    # the middle of the transform gets the outer ring
    assert out[4, 4] == 0.0
    np.testing.assert_array_equal(out, np.fft.fftshift(rf.mask()))
    np.testing.assert_array_equal(rf.gains, gains_before)


def test_all_pass_apply_is_identity():
    rf = RingFilter(8)
    coefficients = np.random.RandomState(3).normal(size=(16, 16))
    np.testing.assert_array_equal(rf.apply(coefficients), coefficients)


def test_apply_rejects_wrong_shape():
    with pytest.raises(ValueError):
        RingFilter(4).apply(np.ones((16, 16)))


def test_snapshot_restore_and_reset():
    rf = RingFilter(4)
    snap = rf.snapshot()
    rf.shrink(0.6)
    assert rf.gains[0] == pytest.approx(0.4)
    # the snapshot was not changed by the shrink
    assert snap.tolist() == [1.0, 1.0, 1.0, 1.0]
    rf.restore(snap)
    assert rf.gains.tolist() == [1.0, 1.0, 1.0, 1.0]
    rf.shrink(3.0)
    rf.reset()
    assert rf.gains.tolist() == [1.0, 1.0, 1.0, 1.0]
