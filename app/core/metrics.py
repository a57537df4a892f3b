"""Prometheus metrics collection for the API.

Tracks request rates, access decisions, playback URL issuance and
resolution failures.
"""

from prometheus_client import Counter, Histogram, Info

# Application info
app_info = Info("vod_access_api", "VOD access API application information")

# HTTP request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
)

# Access control metrics
access_decisions_total = Counter(
    "access_decisions_total",
    "Access decisions by outcome and denial reason",
    ["outcome", "reason"],
)

# Playback URL metrics
playback_urls_total = Counter(
    "playback_urls_total",
    "Playback URLs issued by storage tier",
    ["tier"],
)

url_resolution_failures_total = Counter(
    "url_resolution_failures_total",
    "Playback URL resolution failures by error type",
    ["error_type"],
)

# Lookup metrics
lookup_duration_seconds = Histogram(
    "lookup_duration_seconds",
    "Video lookup duration in seconds",
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0],
)

# Error metrics
errors_total = Counter(
    "errors_total",
    "Total errors by error code and endpoint",
    ["error_code", "endpoint"],
)

# Rate limiting metrics
rate_limit_exceeded_total = Counter(
    "rate_limit_exceeded_total",
    "Total rate limit exceeded events",
    ["category"],
)


class MetricsCollector:
    """Centralized metrics collection and update helper."""

    @staticmethod
    def record_request(
        method: str,
        endpoint: str,
        status: int,
        duration: float,
    ) -> None:
        """Record HTTP request metrics.

        Args:
            method: HTTP method (GET, POST, etc.).
            endpoint: Normalized endpoint path.
            status: HTTP response status code.
            duration: Request duration in seconds.
        """
        http_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status=str(status),
        ).inc()
        http_request_duration_seconds.labels(
            method=method,
            endpoint=endpoint,
        ).observe(duration)

    @staticmethod
    def record_access_decision(has_access: bool, reason: str = "none") -> None:
        outcome = "granted" if has_access else "denied"
        access_decisions_total.labels(outcome=outcome, reason=reason).inc()

    @staticmethod
    def record_playback_url(tier: str) -> None:
        """Record a playback URL issuance ('free' or 'premium')."""
        playback_urls_total.labels(tier=tier).inc()

    @staticmethod
    def record_resolution_failure(error_type: str) -> None:
        url_resolution_failures_total.labels(error_type=error_type).inc()

    @staticmethod
    def record_lookup(duration: float) -> None:
        lookup_duration_seconds.observe(duration)

    @staticmethod
    def record_error(error_code: str, endpoint: str) -> None:
        """Record an error occurrence.

        Args:
            error_code: Error code from ErrorCode class.
            endpoint: Endpoint where the error occurred.
        """
        errors_total.labels(error_code=error_code, endpoint=endpoint).inc()

    @staticmethod
    def record_rate_limit_exceeded(category: str) -> None:
        rate_limit_exceeded_total.labels(category=category).inc()


def initialize_metrics(version: str) -> None:
    """Initialize application metrics with version information.

    Args:
        version: Application version string.
    """
    app_info.info({"version": version})
