"""
Counters describing how a download job went.
"""

from dataclasses import dataclass, field


@dataclass
class TransferStats:
    """Tracks splits, closures and retries of a job, plus the sampled speeds."""

    splits: int = 0
    segments_closed: int = 0
    retries: int = 0
    requests: int = 0
    peak_kbps: float = 0.0
    last_kbps: float = 0.0
    _samples: list[float] = field(default_factory=list, repr=False)

    def record_sample(self, kbps: float) -> None:
        self.last_kbps = kbps
        self.peak_kbps = max(self.peak_kbps, kbps)
        self._samples.append(kbps)
        # Keep a sliding window of the last 10 samples
        if len(self._samples) > 10:
            self._samples.pop(0)

    @property
    def recent_average_kbps(self) -> float:
        if not self._samples:
            return 0.0
        return sum(self._samples) / len(self._samples)
