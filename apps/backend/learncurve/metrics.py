"""Per-route request metrics kept in memory.

集計キーは ``"GET /api/cards/{card_id}"`` のようなメソッド + ルートテンプレート。
カード ID ごとにキーが増えないよう、URL の実パスではなくマッチしたルートで束ねる。
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Mapping, Optional

UNMATCHED_ROUTE = "<unmatched>"


def route_key(method: str, scope: Mapping[str, Any]) -> str:
    """Return the metrics key for a handled request.

    ルーティング後の ``scope["route"]`` があればそのテンプレートを使う。
    どのルートにも一致しなかったリクエスト（404 など）はまとめて 1 キーにする。
    """

    route = scope.get("route")
    template: Optional[str] = getattr(route, "path", None)
    return f"{method} {template or UNMATCHED_ROUTE}"


@dataclass
class RouteStats:
    latencies_ms: Deque[float]
    total: int = 0
    client_errors: int = 0
    server_errors: int = 0
    status_counts: Dict[int, int] = field(default_factory=dict)


class MetricsRegistry:
    """Rolling latency window and status counters per route."""

    def __init__(self, window_size: int = 200) -> None:
        self._window_size = window_size
        self._lock = threading.Lock()
        self._per_route: Dict[str, RouteStats] = {}

    def record(self, key: str, latency_ms: float, *, status_code: int) -> None:
        with self._lock:
            stats = self._per_route.get(key)
            if stats is None:
                stats = RouteStats(latencies_ms=deque(maxlen=self._window_size))
                self._per_route[key] = stats
            stats.latencies_ms.append(latency_ms)
            stats.total += 1
            stats.status_counts[status_code] = stats.status_counts.get(status_code, 0) + 1
            if status_code >= 500:
                stats.server_errors += 1
            elif status_code >= 400:
                stats.client_errors += 1

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {
                key: {
                    "p95_ms": round(calculate_p95(list(stats.latencies_ms)), 2),
                    "count": stats.total,
                    "client_errors": stats.client_errors,
                    "errors": stats.server_errors,
                    "status": {str(code): n for code, n in sorted(stats.status_counts.items())},
                }
                for key, stats in self._per_route.items()
            }


def calculate_p95(values: list[float]) -> float:
    if not values:
        return 0.0
    sorted_vals = sorted(values)
    k = int(0.95 * (len(sorted_vals) - 1))
    return sorted_vals[k]


registry = MetricsRegistry()
