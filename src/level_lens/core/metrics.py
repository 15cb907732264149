"""Prometheus metrics shared across services."""

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code']
)
REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

CACHE_LOOKUPS = Counter(
    'result_cache_lookups_total',
    'Result cache lookups',
    ['cache', 'outcome']
)
CACHE_EVICTIONS = Counter(
    'result_cache_evictions_total',
    'Result cache entries evicted',
    ['cache', 'reason']
)

POOL_SESSIONS_CREATED = Counter(
    'session_pool_created_total',
    'Generation sessions created',
    ['kind']
)
POOL_SESSIONS_DESTROYED = Counter(
    'session_pool_destroyed_total',
    'Generation sessions destroyed',
    ['kind', 'reason']
)
POOL_IDLE_SESSIONS = Gauge(
    'session_pool_idle_sessions',
    'Idle generation sessions held by the pool',
    ['kind']
)

GENERATION_DURATION = Histogram(
    'generation_duration_seconds',
    'Duration of a single generation call',
    ['kind']
)
GENERATION_FAILURES = Counter(
    'generation_failures_total',
    'Failed generation calls',
    ['kind']
)
