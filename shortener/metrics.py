"""Prometheus metrics shared by the shortening and resolution services."""

from prometheus_client import Counter

__all__ = [
    "LINK_CREATIONS_TOTAL",
    "LINK_RESOLUTIONS_TOTAL",
    "CACHE_LOOKUPS_TOTAL",
    "CACHE_ERRORS_TOTAL",
    "CLICK_INCREMENT_FAILURES_TOTAL",
    "STORE_READS_TOTAL",
    "STORE_WRITES_TOTAL",
]

LINK_CREATIONS_TOTAL = Counter(
    "shortener_link_creations_total",
    "Short link creation requests",
    ["status"],
)
LINK_RESOLUTIONS_TOTAL = Counter(
    "shortener_link_resolutions_total",
    "Short code resolution requests",
    ["status"],
)
CACHE_LOOKUPS_TOTAL = Counter(
    "shortener_cache_lookups_total",
    "Resolution cache lookups",
    ["result"],
)
CACHE_ERRORS_TOTAL = Counter(
    "shortener_cache_errors_total",
    "Resolution cache operations that failed and were bypassed",
    ["operation"],
)
CLICK_INCREMENT_FAILURES_TOTAL = Counter(
    "shortener_click_increment_failures_total",
    "Click increments that failed after a successful resolution",
)
STORE_READS_TOTAL = Counter(
    "shortener_store_reads_total",
    "Identity store read operations",
)
STORE_WRITES_TOTAL = Counter(
    "shortener_store_writes_total",
    "Identity store write operations",
)
