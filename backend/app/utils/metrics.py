"""
Prometheus metrics definitions for the FastAPI service.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# User metrics
users_created_total = Counter(
    'users_created_total',
    'Total users created on first sign-in',
    ['provider']
)

# Credit metrics
credit_debits_total = Counter(
    'credit_debits_total',
    'Credit debit attempts',
    ['outcome']  # applied, insufficient
)

credits_granted_total = Counter(
    'credits_granted_total',
    'Total credits granted',
    ['reason']  # trial, purchase
)

# Generation metrics
generation_submissions_total = Counter(
    'generation_submissions_total',
    'Generation submissions handled by the API',
    ['outcome']  # accepted, insufficient_credits, provider_error
)

generation_status_checks_total = Counter(
    'generation_status_checks_total',
    'Generation status checks by reported status',
    ['status']
)

# Image provider metrics
image_provider_requests_total = Counter(
    'image_provider_requests_total',
    'Total image provider requests',
    ['provider', 'operation']
)

image_provider_failures_total = Counter(
    'image_provider_failures_total',
    'Total image provider failures',
    ['provider', 'operation']
)

image_provider_latency_seconds = Histogram(
    'image_provider_latency_seconds',
    'Image provider request latency in seconds',
    ['provider', 'operation'],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0]
)

# Payment metrics
orders_paid_total = Counter(
    'orders_paid_total',
    'Orders marked paid by the Stripe webhook',
    ['product_id']
)
