from prometheus_client import Counter, Histogram

ATTACK_WRITES_TOTAL = Counter(
    "attack_store_writes_total",
    "Attack points written, by outcome.",
    ["result"],
)
ATTACK_QUERIES_TOTAL = Counter(
    "attack_store_queries_total",
    "Attack searches issued, by outcome.",
    ["result"],
)
ATTACK_QUERY_DURATION_SECONDS = Histogram(
    "attack_store_query_duration_seconds",
    "Attack search latency in seconds.",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)
ATTACK_DECODE_FAILURES_TOTAL = Counter(
    "attack_store_decode_failures_total",
    "Stored attack payloads that could not be decoded.",
)
LISTENER_NOTIFICATIONS_TOTAL = Counter(
    "attack_store_listener_notifications_total",
    "Listener invocations after successful attack writes.",
)
