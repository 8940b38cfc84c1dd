"""
Centralized constants for DataForge SQL.

Eliminates magic numbers scattered across the codebase.
Import from here instead of hardcoding values.
"""

# ===========================================================================
# Timeouts (seconds)
# ===========================================================================
CONNECTION_TIMEOUT_S = 5        # Driver connect timeout where supported

# ===========================================================================
# Value formatting
# ===========================================================================
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"

# ===========================================================================
# Pagination
# ===========================================================================
DEFAULT_RECORDS_PER_PAGE = 10
DEFAULT_NAV_LENGTH = 2          # Page links shown on each side of the current page
DEFAULT_QUERYSTRING = "p"

# ===========================================================================
# Metadata cache
# ===========================================================================
COLUMNS_CACHE_TTL_S = 60
COLUMNS_CACHE_MAXSIZE = 100

# ===========================================================================
# Debug capture
# ===========================================================================
DEBUG_SIMULATION_NOTICE = (
    "DEBUG mode enabled. The INSERT, UPDATE and DELETE queries are only simulated."
)
DEBUG_NO_QUERY = "No query was executed."

# ===========================================================================
# Environment
# ===========================================================================
ENV_PREFIX = "DB_"
