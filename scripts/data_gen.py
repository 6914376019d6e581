"""Synthetic scintigraphy phantoms with Poisson counting noise.

This module provides a small demo generator that returns a list of dicts with keys:
- name: str
- clean: numpy array (float64, expected counts per pixel)
- noisy: numpy array (float64, Poisson-sampled counts)
- noise_type: always "poisson"
- counts: peak expected counts of the phantom

The generator does not save files; `main.py` handles the outputs.
"""
from skimage import data
from skimage.transform import resize
import numpy as np


def add_poisson(image, seed=0):
    """Sample Poisson counts around an expected-count image.

    Parameters
    ----------
    image: np.ndarray
        Expected counts per pixel (negative values are treated as 0).
        Fewer counts = more relative noise.
    seed: int
        Random seed

    Returns
    -------
    np.ndarray
        Noisy count image (float64)
    """
    rng = np.random.RandomState(seed)
    # Poisson(lambda) has variance = lambda
    expected = np.maximum(image, 0.0)
    return rng.poisson(expected).astype(np.float64)


def uniform_field(size=64, counts=100.0):
    """Flat-field phantom: every pixel expects `counts`."""
    return np.full((size, size), float(counts))


def hot_spot_phantom(size=64, counts=100.0, background=0.3):
    """Uniform disc of background activity with hot and cold lesions."""
    Y, X = np.ogrid[:size, :size]
    center = (size / 2.0, size / 2.0)
    R = np.sqrt((Y - center[0]) ** 2 + (X - center[1]) ** 2)
    img = np.zeros((size, size), dtype=float)
    img[R < 0.45 * size] = background

    def _disc(cy, cx, radius, value):
        D = np.sqrt((Y - cy) ** 2 + (X - cx) ** 2)
        img[D < radius] = value

    _disc(0.35 * size, 0.35 * size, 0.08 * size, 1.0)
    _disc(0.35 * size, 0.65 * size, 0.05 * size, 0.7)
    _disc(0.65 * size, 0.50 * size, 0.10 * size, 0.0)
    return img * counts


def shepp_logan(size=64, counts=100.0):
    """Shepp-Logan head phantom resized to `size`."""
    phantom = resize(data.shepp_logan_phantom(), (size, size), anti_aliasing=True)
    phantom = np.clip(phantom, 0.0, None)
    return phantom * (counts / phantom.max())


def generate_demo_dataset(size=64, count_levels=(10, 100), seed=0):
    """Return the demo phantoms at each count level.

    Parameters
    ----------
    size: int
        Side of the square phantoms.
    count_levels: iterable of float
        Peak expected counts; each phantom is generated once per level.
    seed: int
        Base random seed; each entry uses its own offset.

    Returns
    -------
    list of dict
    """
    makers = [
        ("uniform", uniform_field),
        ("hotspots", hot_spot_phantom),
        ("shepp_logan", shepp_logan),
    ]
    dataset = []
    for level in count_levels:
        for name, make in makers:
            clean = make(size, counts=float(level))
            noisy = add_poisson(clean, seed=seed + len(dataset))
            dataset.append({"name": f"{name}_{int(level)}", "clean": clean,
                            "noisy": noisy, "noise_type": "poisson", "counts": float(level)})
    return dataset
