from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "effort_requests_total", "Total HTTP requests", ["method", "path", "status"]
)
REQUEST_LATENCY = Histogram(
    "effort_request_latency_seconds", "Latency of HTTP requests", ["method", "path"]
)

CHART_REQUESTS = Counter(
    "effort_chart_requests_total", "Chart image lookups by cache outcome", ["outcome"]
)
CHART_RENDER_DURATION = Histogram(
    "effort_chart_render_duration_seconds", "Chart render latency", ["renderer"]
)
CHART_UPLOAD_FAILURES = Counter(
    "effort_chart_upload_failures_total", "Rendered charts that could not be stored"
)

SLACK_COMMANDS = Counter(
    "effort_slack_commands_total", "Slack /effort invocations", ["subcommand"]
)
