"""Progress reporting for long filter runs.

A run reports an integer percentage through any ``notify(percent)`` callable.
:class:`ProgressThrottle` keeps the calls at most one per interval, and
:class:`ProgressFile` is a notifier that writes the two-line progress file
polled by an external viewer (message line, then percentage line).
"""
import logging
import tempfile
import time
from pathlib import Path


logger = logging.getLogger(__name__)

PROGRESS_FILENAME = "fbnr_progress.txt"
PROGRESS_MESSAGE = "FBNR progress..."


class ProgressThrottle:
    """Rate-limit and order progress notifications.

    Reported values never decrease. The first and final notifications are
    always sent; others only once ``min_interval`` seconds have passed since
    the last one.
    """

    def __init__(self, notify, min_interval: float = 1.0, clock=time.monotonic):
        self.notify = notify
        self.min_interval = min_interval
        self.clock = clock
        self.last_time = None
        self.last_percent = None

    def update(self, percent: int, force: bool = False) -> bool:
        percent = max(0, min(100, int(percent)))
        if self.last_percent is not None:
            percent = max(percent, self.last_percent)
        now = self.clock()
        if not force and self.last_time is not None and now - self.last_time < self.min_interval:
            return False
        self.notify(percent)
        self.last_time = now
        self.last_percent = percent
        return True

    def finish(self):
        if self.last_percent != 100:
            self.update(100, force=True)


def default_progress_path() -> Path:
    return Path(tempfile.gettempdir()) / PROGRESS_FILENAME


class ProgressFile:
    """Write progress to a small text file for another process to poll.

    Write failures are logged and otherwise ignored: progress is a side
    channel and must not stop the filter.
    """

    def __init__(self, path=None, message: str = PROGRESS_MESSAGE):
        self.path = Path(path) if path is not None else default_progress_path()
        self.message = message

    def __call__(self, percent: int):
        try:
            self.path.write_text(f"{self.message}\n{int(percent)}\n", encoding="utf-8")
        except OSError as exc:
            logger.warning("Error writing progress file %s: %s", self.path, exc)


def read_progress(path=None):
    """Read a progress file back as ``(message, percent)``.

    Raises ``ValueError`` when the file does not hold the two expected lines.
    """
    path = Path(path) if path is not None else default_progress_path()
    lines = path.read_text(encoding="utf-8").splitlines()
    if len(lines) < 2:
        raise ValueError(f"Malformed progress file: {path}")
    return lines[0], int(lines[1].strip())
