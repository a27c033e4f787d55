from typing import Any, Dict


class StorageMetrics:
    """
    Storage put counts and latency for one request.
    Fed from worker results on the coordinating thread, so no locking.
    """
    def __init__(self):
        self.stored = 0
        self.errors = 0
        self.total_time = 0.0

    def record_success(self, elapsed: float):
        self.stored += 1
        self.total_time += float(elapsed)

    def record_error(self, elapsed: float = 0.0):
        self.errors += 1
        self.total_time += float(elapsed)

    @property
    def avg_latency(self) -> float:
        done = self.stored + self.errors
        return (self.total_time / done) if done else 0.0

    def snapshot(self) -> Dict[str, Any]:
        return {
            "stored": self.stored,
            "errors": self.errors,
            "avg_latency": self.avg_latency,
            "total_time": self.total_time,
        }
