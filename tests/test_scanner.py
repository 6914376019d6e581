import numpy as np
import pytest

from fbnr import FBNROptions, denoise, run_fbnr
from fbnr.block import push_block
from fbnr.scanner import block_origins, finalize, scan_phases


def poisson_field(size=16, mean=100.0, seed=0):
    rng = np.random.RandomState(seed)
    return rng.poisson(mean, size=(size, size)).astype(float)


def test_scan_phases_cover_all_offsets():
    phases = list(scan_phases(4))
    assert len(phases) == 16
    assert phases[0] == (-3, -3)
    assert phases[1] == (-3, -2)
    assert phases[-1] == (0, 0)
    assert len(set(phases)) == 16


@pytest.mark.parametrize("block_side,height,width", [(4, 16, 16), (4, 10, 13), (8, 20, 9)])
def test_every_pixel_covered_once_per_pass(block_side, height, width):
    coverage = np.zeros((height, width))
    ones = np.ones((block_side, block_side))
    for start_x, start_y in scan_phases(block_side):
        single = np.zeros((height, width))
        for x, y in block_origins(block_side, width, height, start_x, start_y):
            push_block(single, ones, x, y)
        assert np.all(single == 1.0)
        coverage += single
    assert np.all(coverage == block_side ** 2)


def test_block_origins_raster_order():
    origins = list(block_origins(4, 8, 8, -1, -2))
    assert origins[:3] == [(-1, -2), (3, -2), (7, -2)]
    assert origins[3] == (-1, 2)
    assert len(origins) == 9


def test_finalize_averages_and_clamps():
    acc = np.array([[16.0, -4.0], [32.0, 0.0]])
    image, max_value = finalize(acc, 16)
    np.testing.assert_array_equal(image, [[1.0, 0.0], [2.0, 0.0]])
    assert max_value == 2.0
    # accumulator untouched
    assert acc[0, 1] == -4.0


def test_uniform_poisson_image_keeps_its_counts():
    img = poisson_field(16, 100.0, seed=1)
    result = run_fbnr(img, FBNROptions(block_side=4, max_iterations=50, change_rate=5))
    assert result.image.shape == img.shape
    assert np.all(result.image >= 0.0)
    assert result.max_value == pytest.approx(result.image.max())
    assert result.image.sum() == pytest.approx(img.sum(), rel=0.05)
    # smoothing only, no new structure
    assert result.image.std() < img.std()
    assert not result.non_convergent
    assert result.block_counts["non_convergent"] == 0


def test_zero_image_stays_zero():
    result = run_fbnr(np.zeros((12, 12)))
    assert not result.image.any()
    assert result.max_value == 0.0
    assert not result.non_convergent
    assert not result.homogeneous
    assert result.block_counts["empty"] == sum(result.block_counts.values())
    assert result.iterations == 0


def test_zero_block_among_counts():
    img = poisson_field(16, 100.0, seed=2)
    img[4:8, 4:8] = 0.0
    result = run_fbnr(img)
    assert np.all(np.isfinite(result.image))
    assert np.all(result.image >= 0.0)
    # only the aligned tiling places a block exactly on the hole
    assert result.block_counts["empty"] == 1


def test_block_counts_add_up():
    img = poisson_field(8, 50.0, seed=3)
    result = run_fbnr(img, FBNROptions(max_iterations=5))
    # 16 passes of 3x3 or 2x2 block grids over an 8x8 image
    per_pass = [len(list(block_origins(4, 8, 8, sx, sy))) for sx, sy in scan_phases(4)]
    assert sum(result.block_counts.values()) == sum(per_pass)


def test_non_convergence_reported_once(caplog):
    caplog.set_level("WARNING", logger="fbnr.scanner")
    img = poisson_field(8, 50.0, seed=4)
    result = run_fbnr(img, FBNROptions(tolerance=0.0, max_iterations=3))
    assert result.non_convergent
    assert result.block_counts["non_convergent"] > 0
    warnings = [r for r in caplog.records if "did not converge" in r.getMessage()]
    assert len(warnings) == 1


def test_homogeneity_reported_once(caplog):
    caplog.set_level("WARNING", logger="fbnr.scanner")
    result = run_fbnr(np.full((8, 8), 40.0), FBNROptions(max_iterations=5))
    # interior blocks of a flat image cannot be filtered
    assert result.homogeneous
    warnings = [r for r in caplog.records if "homogeneity" in r.getMessage()]
    assert len(warnings) == 1
    # every block covering the centre lies inside the image in all 16 passes
    np.testing.assert_array_equal(result.image[3:5, 3:5], 40.0)


def test_progress_is_monotonic_and_ends_at_100():
    seen = []
    img = poisson_field(8, 50.0, seed=5)
    run_fbnr(img, FBNROptions(max_iterations=3, progress_interval=0.0), progress=seen.append)
    assert seen[0] == 0
    assert seen[-1] == 100
    assert seen.count(100) == 1
    assert all(b >= a for a, b in zip(seen, seen[1:]))
    # one update per pass plus the initial 0
    assert len(seen) == 17


def test_progress_rate_limited():
    seen = []
    img = poisson_field(8, 50.0, seed=6)
    run_fbnr(img, FBNROptions(max_iterations=3, progress_interval=3600.0), progress=seen.append)
    assert seen == [0, 100]


def test_invalid_images_rejected():
    with pytest.raises(ValueError):
        run_fbnr(np.zeros((4, 4, 3)))
    with pytest.raises(ValueError):
        run_fbnr(np.zeros((0, 4)))
    bad = np.ones((8, 8))
    bad[2, 2] = np.nan
    with pytest.raises(ValueError):
        run_fbnr(bad)


def test_source_image_not_modified():
    img = poisson_field(8, 30.0, seed=7)
    before = img.copy()
    run_fbnr(img, FBNROptions(max_iterations=5))
    np.testing.assert_array_equal(img, before)


def test_denoise_wrapper_returns_image():
    img = poisson_field(8, 30.0, seed=8).astype(np.int32)
    out = denoise(img, block_side=8, max_iterations=5)
    assert out.shape == (8, 8)
    assert out.dtype == np.float64
    assert np.all(out >= 0.0)
