"""Prometheus metric definitions shared by the HTTP layer and the services."""
import os

from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry, REGISTRY
from prometheus_client import multiprocess

# Check if running in multi-process mode (Gunicorn)
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

if MULTIPROCESS_MODE:
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
    _metric_registry = None  # values are written to the multiprocess directory
else:
    registry = REGISTRY
    _metric_registry = REGISTRY

# HTTP Request Metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'http_status'],
    registry=_metric_registry
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    registry=_metric_registry,
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

http_requests_in_flight = Gauge(
    'http_requests_in_flight',
    'Number of HTTP requests currently being processed',
    registry=_metric_registry
)

# Business Metrics
orders_created_total = Counter(
    'retail_orders_created_total',
    'Sales orders created',
    registry=_metric_registry
)

orders_cancelled_total = Counter(
    'retail_orders_cancelled_total',
    'Sales orders cancelled (stock returned)',
    registry=_metric_registry
)

stock_in_confirmed_total = Counter(
    'retail_stock_in_confirmed_total',
    'Stock-in receipts applied to inventory',
    registry=_metric_registry
)

stock_movements_total = Counter(
    'retail_stock_movements_total',
    'Inventory ledger rows written',
    ['type'],
    registry=_metric_registry
)

insufficient_stock_total = Counter(
    'retail_insufficient_stock_total',
    'Requests rejected for insufficient stock',
    registry=_metric_registry
)
