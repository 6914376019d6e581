"""Utility functions: image quality metrics for count images."""
import numpy as np
from skimage.metrics import peak_signal_noise_ratio, structural_similarity


def _data_range(clean):
    """Peak of the reference image, used as the metric data range."""
    peak = float(np.max(clean)) if clean.size else 0.0
    return peak if peak > 0 else 1.0


def mse(a: np.ndarray, b: np.ndarray) -> float:
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    return float(np.mean((a - b) ** 2))


def psnr(clean: np.ndarray, test: np.ndarray) -> float:
    clean = np.asarray(clean, dtype=np.float64)
    test = np.asarray(test, dtype=np.float64)
    return float(peak_signal_noise_ratio(clean, test, data_range=_data_range(clean)))


def ssim(clean: np.ndarray, test: np.ndarray) -> float:
    clean = np.asarray(clean, dtype=np.float64)
    test = np.asarray(test, dtype=np.float64)
    # default 7x7 window, clipped for tiny phantoms
    win = min(7, min(clean.shape))
    if win % 2 == 0:
        win -= 1
    return float(structural_similarity(clean, test, data_range=_data_range(clean), win_size=win))


def count_ratio(noisy: np.ndarray, denoised: np.ndarray) -> float:
    """Total counts after filtering relative to before (1.0 = preserved)."""
    total = float(np.sum(noisy))
    return float(np.sum(denoised)) / total if total else 1.0


def compute_metrics(clean: np.ndarray, denoised: np.ndarray) -> dict:
    return {"mse": mse(clean, denoised), "psnr": psnr(clean, denoised), "ssim": ssim(clean, denoised)}
