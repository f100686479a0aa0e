from dataclasses import dataclass


@dataclass
class SyncMetrics:
    """Track counters for fetches, mirror writes and notifications."""

    fetches: int = 0
    fetch_failures: int = 0
    deduplicated: int = 0
    total_fetch_time_ms: float = 0.0
    mirror_writes: int = 0
    mirror_failures: int = 0
    notifications: int = 0
    mutations: int = 0
    evictions: int = 0

    @property
    def failure_rate(self) -> float:
        """Share of completed fetches that failed."""
        if self.fetches == 0:
            return 0.0
        return self.fetch_failures / self.fetches

    @property
    def avg_fetch_time_ms(self) -> float:
        """Average duration of a completed fetch."""
        if self.fetches == 0:
            return 0.0
        return self.total_fetch_time_ms / self.fetches

    def record_fetch(self, duration_ms: float, failed: bool = False) -> None:
        """Record a settled fetch."""
        self.fetches += 1
        self.total_fetch_time_ms += duration_ms
        if failed:
            self.fetch_failures += 1

    def record_mirror_write(self, written: bool) -> None:
        """Record a mirror write attempt."""
        if written:
            self.mirror_writes += 1
        else:
            self.mirror_failures += 1

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        return {
            "fetches": self.fetches,
            "fetch_failures": self.fetch_failures,
            "failure_rate": self.failure_rate,
            "deduplicated": self.deduplicated,
            "avg_fetch_time_ms": self.avg_fetch_time_ms,
            "mirror_writes": self.mirror_writes,
            "mirror_failures": self.mirror_failures,
            "notifications": self.notifications,
            "mutations": self.mutations,
            "evictions": self.evictions,
        }
