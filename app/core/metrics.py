from prometheus_client import Counter, Gauge, Histogram


HTTP_REQUESTS_TOTAL = Counter(
    "storefront_http_requests_total",
    "Total HTTP requests",
    ["service", "method", "path", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "storefront_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["service", "method", "path"],
)

AUTH_TOKEN_VALIDATION_TOTAL = Counter(
    "storefront_auth_token_validation_total",
    "Authentication token validation events",
    ["service", "result"],
)

PERMISSION_CHECK_TOTAL = Counter(
    "storefront_permission_check_total",
    "Role check events",
    ["service", "role", "result"],
)

ORDERS_SERVICE_OPERATIONS_TOTAL = Counter(
    "storefront_orders_service_operations_total",
    "Order service operations",
    ["service", "operation", "status"],
)

INVENTORY_OPERATIONS_TOTAL = Counter(
    "storefront_inventory_operations_total",
    "Stock reservations and restorations",
    ["service", "operation", "status"],
)

INVENTORY_UNITS_TOTAL = Counter(
    "storefront_inventory_units_total",
    "Units of stock reserved or restored",
    ["service", "operation"],
)

PRODUCTS_OPERATIONS_TOTAL = Counter(
    "storefront_products_operations_total",
    "Product endpoint operations",
    ["service", "operation", "status"],
)

CATEGORIES_OPERATIONS_TOTAL = Counter(
    "storefront_categories_operations_total",
    "Category endpoint operations",
    ["service", "operation", "status"],
)

STORE_ERRORS_TOTAL = Counter(
    "storefront_store_errors_total",
    "Unexpected database errors surfaced as 500",
    ["service", "path"],
)

REDIS_OPS = Counter(
    "storefront_redis_ops",
    "Redis operations",
    ["service", "operation", "status"],
)

REDIS_CONNECTION_STATUS = Gauge(
    "storefront_redis_connection_status",
    "Redis connection status (1=connected, 0=disconnected)",
    ["service"],
)

REDIS_CACHE_HITS_TOTAL = Counter(
    "storefront_redis_cache_hits_total",
    "Redis cache hits",
    ["service", "cache_key"],
)

REDIS_CACHE_MISSES_TOTAL = Counter(
    "storefront_redis_cache_misses_total",
    "Redis cache misses",
    ["service", "cache_key"],
)

KAFKA_PRODUCER_START_TOTAL = Counter(
    "storefront_kafka_producer_start_total",
    "Kafka producer start events",
    ["service", "result"],
)

KAFKA_PRODUCER_STOP_TOTAL = Counter(
    "storefront_kafka_producer_stop_total",
    "Kafka producer stop events",
    ["service", "result"],
)

KAFKA_PRODUCER_MESSAGES_TOTAL = Counter(
    "storefront_kafka_producer_messages_total",
    "Kafka producer send events",
    ["service", "result"],
)
