"""Monitoring configuration for the study engine."""
from prometheus_client import Counter, Histogram, start_http_server

# Session metrics
sessions_started = Counter(
    "vocastudy_sessions_started_total",
    "Total number of study sessions started",
    ["mode"],
)

sessions_completed = Counter(
    "vocastudy_sessions_completed_total",
    "Total number of study sessions that reached their final state",
    ["mode"],
)

# Answer metrics
answers_submitted = Counter(
    "vocastudy_answers_total",
    "Total number of answers submitted",
    ["mode", "kind", "outcome"],
)

hints_used = Counter(
    "vocastudy_hints_total",
    "Total number of spelling hints revealed",
)

# Flow metrics
phase_transitions = Counter(
    "vocastudy_phase_transitions_total",
    "Total number of learn phase transitions",
    ["phase"],
)

retries = Counter(
    "vocastudy_retries_total",
    "Total number of retry passes over incorrect items",
    ["mode"],
)

# Repository metrics
load_duration = Histogram(
    "vocastudy_load_duration_seconds",
    "Duration of vocabulary loads in seconds",
    buckets=[0.05, 0.1, 0.5, 1.0, 2.0, 5.0],
)

# Error metrics
error_count = Counter(
    "vocastudy_errors_total",
    "Total number of errors encountered",
    ["error_type"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
