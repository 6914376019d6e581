"""Fourier Block Noise Reduction for scintigraphic images."""
from .config import FBNROptions
from .progress import ProgressFile, ProgressThrottle, read_progress
from .scanner import ScanResult, denoise, run_fbnr

__all__ = [
    "FBNROptions",
    "ProgressFile",
    "ProgressThrottle",
    "ScanResult",
    "denoise",
    "read_progress",
    "run_fbnr",
]
