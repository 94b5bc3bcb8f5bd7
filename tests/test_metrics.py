from types import SimpleNamespace

from learncurve.metrics import MetricsRegistry, calculate_p95, route_key


def test_p95_of_empty_window_is_zero():
    assert calculate_p95([]) == 0.0


def test_route_key_prefers_matched_template():
    scope = {"path": "/api/cards/42", "route": SimpleNamespace(path="/api/cards/{card_id}")}
    assert route_key("GET", scope) == "GET /api/cards/{card_id}"
    assert route_key("GET", {"path": "/nope"}) == "GET <unmatched>"


def test_registry_tracks_counts_status_classes_and_p95():
    registry = MetricsRegistry(window_size=100)
    for latency in range(1, 101):
        status = 500 if latency > 98 else 404 if latency > 95 else 200
        registry.record("GET /api/review/today", float(latency), status_code=status)

    snapshot = registry.snapshot()["GET /api/review/today"]
    assert snapshot["count"] == 100
    assert snapshot["errors"] == 2
    assert snapshot["client_errors"] == 3
    assert snapshot["status"] == {"200": 95, "404": 3, "500": 2}
    assert snapshot["p95_ms"] == 95.0


def test_latency_window_is_bounded():
    registry = MetricsRegistry(window_size=3)
    for latency in (1000.0, 1.0, 2.0, 3.0):
        registry.record("GET /healthz", latency, status_code=200)
    snapshot = registry.snapshot()["GET /healthz"]
    assert snapshot["count"] == 4
    assert snapshot["p95_ms"] == 2.0
