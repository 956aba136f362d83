"""
Dataclass for tracking the statistics of a single sync run.
"""

import time
from dataclasses import dataclass, field


@dataclass
class SyncStats:
    """Counts what a sync run transferred and touched, including real-time speed."""

    downloads: int = 0
    bytes_downloaded: int = 0
    entries_extracted: int = 0
    paths_removed: int = 0

    # Real-time speed calculation fields
    peak_speed_bps: float = 0.0
    _speed_samples: list[float] = field(default_factory=list, repr=False)
    _last_progress_time: float = field(default=0.0, repr=False)
    _last_progress_bytes: int = field(default=0, repr=False)

    def __post_init__(self):
        self._last_progress_time = time.monotonic()

    def record_chunk(self, size: int) -> None:
        self.bytes_downloaded += size
        self.update_speed_stats(self.bytes_downloaded)

    def update_speed_stats(self, total_bytes_so_far: int) -> None:
        """
        Updates the download speed based on progress.

        Args:
            total_bytes_so_far: The cumulative total of bytes downloaded in the run.
        """
        now = time.monotonic()
        elapsed = now - self._last_progress_time

        # Update speed roughly twice per second
        if elapsed > 0.5:
            bytes_diff = total_bytes_so_far - self._last_progress_bytes
            if bytes_diff > 0:
                self._speed_samples.append(bytes_diff / elapsed)
                # Keep a sliding window of the last 10 speed samples
                if len(self._speed_samples) > 10:
                    self._speed_samples.pop(0)
                average = sum(self._speed_samples) / len(self._speed_samples)
                self.peak_speed_bps = max(self.peak_speed_bps, average)

            self._last_progress_time = now
            self._last_progress_bytes = total_bytes_so_far
