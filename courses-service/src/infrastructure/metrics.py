from prometheus_client import Counter, Histogram, generate_latest
from fastapi import Response

# Метрики для HTTP запросов
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

# Метрики для кэша
cache_hits_total = Counter('cache_hits_total', 'Total cache hits')
cache_misses_total = Counter('cache_misses_total', 'Total cache misses')

# Метрики для БД
db_queries_total = Counter('db_queries_total', 'Total database queries')

# Метрики версионирования контента
content_mutations_total = Counter(
    'content_mutations_total',
    'Content mutations by kind and how they were applied',
    ['kind', 'mode']
)
version_forks_total = Counter('version_forks_total', 'Course versions created by forking')
locked_content_requests_total = Counter(
    'locked_content_requests_total',
    'Requests for content the viewer has no access to',
    ['item_type']
)
blob_store_errors_total = Counter(
    'blob_store_errors_total',
    'Failed blob store calls',
    ['operation']
)

def metrics_endpoint():
    """Endpoint для Prometheus метрик"""
    return Response(content=generate_latest(), media_type="text/plain")
