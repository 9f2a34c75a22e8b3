from __future__ import annotations

from dataclasses import dataclass
from threading import Lock


@dataclass
class EndpointMetric:
    total_requests: int = 0
    total_duration_ms: float = 0.0
    error_count: int = 0

    def add(self, status_code: int, duration_ms: float) -> None:
        self.total_requests += 1
        self.total_duration_ms += duration_ms
        if status_code >= 400:
            self.error_count += 1

    @property
    def avg_duration_ms(self) -> float:
        if not self.total_requests:
            return 0.0
        return self.total_duration_ms / self.total_requests


class InMemoryRequestMetrics:
    def __init__(self) -> None:
        self._metrics: dict[tuple[str, str], EndpointMetric] = {}
        self._company_metrics: dict[str, EndpointMetric] = {}
        self._ready_alerts: dict[str, int] = {}
        self._lock = Lock()

    def observe(
        self,
        endpoint: str,
        method: str,
        status_code: int,
        duration_ms: float,
        company_id: str | None = None,
    ) -> None:
        with self._lock:
            self._metrics.setdefault((endpoint, method), EndpointMetric()).add(status_code, duration_ms)
            if company_id:
                self._company_metrics.setdefault(company_id, EndpointMetric()).add(status_code, duration_ms)

    def count_ready_alert(self, company_id: str | None) -> None:
        key = company_id or "-"
        with self._lock:
            self._ready_alerts[key] = self._ready_alerts.get(key, 0) + 1

    def snapshot(self) -> dict[str, dict[str, float | int]]:
        with self._lock:
            return {
                f"{method} {endpoint}": {
                    "total_requests": metric.total_requests,
                    "total_duration_ms": round(metric.total_duration_ms, 2),
                    "avg_duration_ms": round(metric.avg_duration_ms, 2),
                    "error_count": metric.error_count,
                }
                for (endpoint, method), metric in self._metrics.items()
            }

    def snapshot_per_company(self) -> dict[str, dict[str, float | int]]:
        with self._lock:
            result: dict[str, dict[str, float | int]] = {}
            for company_id in self._company_metrics.keys() | self._ready_alerts.keys():
                metric = self._company_metrics.get(company_id) or EndpointMetric()
                result[company_id] = {
                    "requests": metric.total_requests,
                    "errors": metric.error_count,
                    "avg_duration_ms": round(metric.avg_duration_ms, 2),
                    "ready_alerts": self._ready_alerts.get(company_id, 0),
                }
            return result


request_metrics = InMemoryRequestMetrics()
