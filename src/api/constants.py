"""API-related constants."""

# HTTP Status Codes
HTTP_500_INTERNAL_SERVER_ERROR = 500

# HTTP Headers
CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

# Request handling
REQUEST_BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
STATIC_METHODS = frozenset({"GET", "HEAD"})

# Content types
JSON_CONTENT_TYPES = frozenset({"application/json", "text/json"})
JSON_SUFFIX = "+json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# Compression
GZIP_MINIMUM_SIZE = 1024

# Flash message categories consumed by the page layout
FLASH_SUCCESS = "success"
FLASH_ERROR = "error"
