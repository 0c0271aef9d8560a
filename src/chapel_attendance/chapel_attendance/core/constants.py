"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_WARNING_THRESHOLD = 2
MIN_WARNING_THRESHOLD = 1
MAX_WARNING_THRESHOLD = 10

# Bounded attempts for a single snapshot upsert before giving up.
SNAPSHOT_UPSERT_ATTEMPTS = 3

# Manifest columns that may carry the scanned identifier, in priority order.
IDENTIFIER_COLUMNS = ("uniqueid", "unique_id", "matric", "matric_number", "id")
LEVEL_COLUMNS = ("level", "level_code")

STORAGE_PREFIX = "attendance"
ADMIN_HEADER = "X-Admin-Id"
