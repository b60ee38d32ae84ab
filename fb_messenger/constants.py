"""Application-wide constants.

This module centralizes Graph API and webhook constants to ensure a single
source of truth. Settings in ``fb_messenger.config`` default to these values.
"""

# =============================================================================
# Facebook Graph API
# =============================================================================

# Graph API host; paging cursors are absolute URLs on this host
FACEBOOK_GRAPH_API_BASE_URL = "https://graph.facebook.com"

# Facebook Graph API version
FACEBOOK_GRAPH_API_VERSION = "v18.0"

# =============================================================================
# HTTP Timeout Configuration
# =============================================================================

# Timeout for read/list Graph API calls (seconds)
GRAPH_API_READ_TIMEOUT_SECONDS = 10.0

# Timeout for the send path; message delivery can be much slower than reads
GRAPH_API_SEND_TIMEOUT_SECONDS = 300.0

# =============================================================================
# Pagination
# =============================================================================

# Maximum number of pages followed in a single pagination walk
DEFAULT_PAGINATION_MAX_PAGES = 100

# Query parameter carrying the access token; stripped from cursors and logs
ACCESS_TOKEN_PARAM = "access_token"

# =============================================================================
# Webhook
# =============================================================================

# Only page subscriptions are routed to the hook registry
WEBHOOK_OBJECT_PAGE = "page"

# Response body length kept in error logs (chars)
LOG_RESPONSE_BODY_CHARS = 500
