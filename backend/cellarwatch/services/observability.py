from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from threading import Lock


def _status_class(status_code: int) -> str | None:
    if 400 <= status_code <= 499:
        return "client"
    if status_code >= 500:
        return "server"
    return None


@dataclass
class RouteStats:
    method: str
    path: str
    count: int = 0
    total_latency_ms: float = 0.0
    min_latency_ms: float = 0.0
    max_latency_ms: float = 0.0
    client_errors: int = 0
    server_errors: int = 0

    def record(self, duration_ms: float, status_code: int) -> None:
        self.count += 1
        self.total_latency_ms += duration_ms
        if self.count == 1:
            self.min_latency_ms = self.max_latency_ms = duration_ms
        else:
            self.min_latency_ms = min(self.min_latency_ms, duration_ms)
            self.max_latency_ms = max(self.max_latency_ms, duration_ms)

        error_class = _status_class(status_code)
        if error_class == "client":
            self.client_errors += 1
        elif error_class == "server":
            self.server_errors += 1

    @property
    def avg_latency_ms(self) -> float:
        if self.count == 0:
            return 0.0
        return self.total_latency_ms / self.count

    def as_dict(self) -> dict[str, object]:
        return {
            "method": self.method,
            "path": self.path,
            "count": self.count,
            "avg_latency_ms": round(self.avg_latency_ms, 2),
            "min_latency_ms": round(self.min_latency_ms, 2),
            "max_latency_ms": round(self.max_latency_ms, 2),
            "client_errors": self.client_errors,
            "server_errors": self.server_errors,
        }


class ObservabilityTracker:
    """Process-local request and domain-error counters behind a single lock."""

    def __init__(self) -> None:
        self._lock = Lock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._started_at = datetime.utcnow()
            self._totals: Counter[str] = Counter()
            self._domain_errors: Counter[str] = Counter()
            self._routes: dict[tuple[str, str], RouteStats] = {}

    def record(self, *, method: str, path: str, status_code: int, duration_ms: float) -> None:
        with self._lock:
            route = self._routes.setdefault((method, path), RouteStats(method=method, path=path))
            route.record(duration_ms=duration_ms, status_code=status_code)

            self._totals["requests"] += 1
            error_class = _status_class(status_code)
            if error_class is not None:
                self._totals[f"{error_class}_errors"] += 1

    def record_domain_error(self, kind: str) -> None:
        with self._lock:
            self._domain_errors[kind] += 1

    def snapshot(self) -> dict[str, object]:
        with self._lock:
            now = datetime.utcnow()
            return {
                "generated_at": now,
                "uptime_seconds": int((now - self._started_at).total_seconds()),
                "total_requests": self._totals["requests"],
                "total_client_errors": self._totals["client_errors"],
                "total_server_errors": self._totals["server_errors"],
                "domain_errors": dict(sorted(self._domain_errors.items())),
                "routes": [
                    route.as_dict()
                    for route in sorted(self._routes.values(), key=lambda item: (item.path, item.method))
                ],
            }


observability_tracker = ObservabilityTracker()
