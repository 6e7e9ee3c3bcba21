"""Metrics for vframes-client."""

from prometheus_client import Counter, Histogram

DEFAULT_BUCKETS_EXTERNAL_API = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)

api_request = Counter(
    "vframes_client_api_requests_total",
    "Total number of video platform API requests",
    ["method", "verb"],
)

api_request_duration = Histogram(
    "vframes_client_api_request_duration_seconds",
    "Video platform API request duration in seconds",
    ["method", "verb"],
    buckets=DEFAULT_BUCKETS_EXTERNAL_API,
)

api_request_errors = Counter(
    "vframes_client_api_request_errors_total",
    "Video platform API requests that raised",
    ["method", "verb"],
)

token_refresh = Counter(
    "vframes_client_token_refresh_total",
    "Access token refresh exchanges by outcome",
    ["outcome"],
)

poll_tick = Counter(
    "vframes_client_poll_ticks_total",
    "Job status poll ticks by outcome",
    ["outcome"],
)
