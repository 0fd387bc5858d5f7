"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MINUTES_PER_DAY = 24 * 60

DEFAULT_HISTORY_LIMIT = 30
DEFAULT_UPCOMING_WINDOW_DAYS = 30

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Fallback policy created on first punch-in when a business has none.
FALLBACK_POLICY_NAME = "Standard Attendance Policy"
FALLBACK_POLICY_DESCRIPTION = "Automatically generated default attendance policy"
FALLBACK_POLICY_TIMEZONE = "UTC"
FALLBACK_GRACE_MINUTES = 5

# A deadlocked unit of work is re-run once before the conflict reaches the caller.
TRANSACTION_ATTEMPTS = 2
