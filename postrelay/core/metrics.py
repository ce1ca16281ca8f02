"""In-process metrics collector with Prometheus text exposition."""

from __future__ import annotations

from collections import defaultdict
from threading import Lock
import time
from typing import Dict, Tuple


_lock = Lock()
_started_at = time.time()

_http_requests_total: Dict[Tuple[str, str, str], int] = defaultdict(int)
_http_request_duration_sum: Dict[Tuple[str, str], float] = defaultdict(float)
_http_request_duration_count: Dict[Tuple[str, str], int] = defaultdict(int)
_sweep_runs_total: Dict[str, int] = defaultdict(int)
_post_outcomes_total: Dict[Tuple[str, str], int] = defaultdict(int)
_publish_errors_total: Dict[Tuple[str, str], int] = defaultdict(int)


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _normalize_label(value: str, *, fallback: str = "unknown") -> str:
    normalized = (value or "").strip()
    return normalized or fallback


def record_http_request(*, method: str, path: str, status_code: int, duration_seconds: float) -> None:
    status = str(status_code)
    method_label = method.upper()
    path_label = path or "unknown"
    duration = max(duration_seconds, 0.0)

    with _lock:
        _http_requests_total[(method_label, path_label, status)] += 1
        _http_request_duration_sum[(method_label, path_label)] += duration
        _http_request_duration_count[(method_label, path_label)] += 1


def record_sweep_run(*, status: str) -> None:
    with _lock:
        _sweep_runs_total[_normalize_label(status)] += 1


def record_post_outcome(*, platform: str, status: str, count: int = 1) -> None:
    if count <= 0:
        return
    with _lock:
        key = (_normalize_label(platform), _normalize_label(status))
        _post_outcomes_total[key] += int(count)


def record_publish_error(*, platform: str, kind: str, count: int = 1) -> None:
    if count <= 0:
        return
    with _lock:
        key = (_normalize_label(platform), _normalize_label(kind))
        _publish_errors_total[key] += int(count)


def get_post_outcome_count(*, platform: str, status: str) -> int:
    with _lock:
        return int(_post_outcomes_total.get((platform, status), 0))


def render_prometheus_metrics(*, app_name: str, app_version: str, env: str) -> str:
    uptime = max(time.time() - _started_at, 0.0)

    with _lock:
        http_total = dict(_http_requests_total)
        duration_sum = dict(_http_request_duration_sum)
        duration_count = dict(_http_request_duration_count)
        sweep_runs_total = dict(_sweep_runs_total)
        post_outcomes_total = dict(_post_outcomes_total)
        publish_errors_total = dict(_publish_errors_total)

    lines = [
        "# HELP postrelay_build_info Build metadata.",
        "# TYPE postrelay_build_info gauge",
        (
            f'postrelay_build_info{{app_name="{_escape_label(app_name)}",'
            f'version="{_escape_label(app_version)}",env="{_escape_label(env)}"}} 1'
        ),
        "# HELP postrelay_process_uptime_seconds Process uptime in seconds.",
        "# TYPE postrelay_process_uptime_seconds gauge",
        f"postrelay_process_uptime_seconds {uptime:.6f}",
        "# HELP postrelay_http_requests_total Total HTTP requests.",
        "# TYPE postrelay_http_requests_total counter",
    ]

    for (method, path, status), value in sorted(http_total.items()):
        lines.append(
            (
                f'postrelay_http_requests_total{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}",status="{_escape_label(status)}"}} {value}'
            )
        )

    lines.extend(
        [
            "# HELP postrelay_http_request_duration_seconds Request duration summary.",
            "# TYPE postrelay_http_request_duration_seconds summary",
        ]
    )
    for (method, path), value in sorted(duration_sum.items()):
        lines.append(
            (
                f'postrelay_http_request_duration_seconds_sum{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}"}} {value:.6f}'
            )
        )
    for (method, path), value in sorted(duration_count.items()):
        lines.append(
            (
                f'postrelay_http_request_duration_seconds_count{{method="{_escape_label(method)}",'
                f'path="{_escape_label(path)}"}} {value}'
            )
        )

    lines.extend(
        [
            "# HELP postrelay_sweep_runs_total Due-post sweeps by outcome.",
            "# TYPE postrelay_sweep_runs_total counter",
        ]
    )
    for status, value in sorted(sweep_runs_total.items()):
        lines.append(f'postrelay_sweep_runs_total{{status="{_escape_label(status)}"}} {value}')

    lines.extend(
        [
            "# HELP postrelay_post_outcomes_total Processed posts by platform and status.",
            "# TYPE postrelay_post_outcomes_total counter",
        ]
    )
    for (platform, status), value in sorted(post_outcomes_total.items()):
        lines.append(
            (
                f'postrelay_post_outcomes_total{{platform="{_escape_label(platform)}",'
                f'status="{_escape_label(status)}"}} {value}'
            )
        )

    lines.extend(
        [
            "# HELP postrelay_publish_errors_total Publish errors by platform and kind.",
            "# TYPE postrelay_publish_errors_total counter",
        ]
    )
    for (platform, kind), value in sorted(publish_errors_total.items()):
        lines.append(
            (
                f'postrelay_publish_errors_total{{platform="{_escape_label(platform)}",'
                f'kind="{_escape_label(kind)}"}} {value}'
            )
        )

    return "\n".join(lines) + "\n"


def reset_metrics_for_tests() -> None:
    global _started_at
    with _lock:
        _http_requests_total.clear()
        _http_request_duration_sum.clear()
        _http_request_duration_count.clear()
        _sweep_runs_total.clear()
        _post_outcomes_total.clear()
        _publish_errors_total.clear()
        _started_at = time.time()
