"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_STOP_REASON = "Event stopped by admin before check-out"
DEFAULT_SCAN_COOLDOWN_SECONDS = 0
DEFAULT_SCAN_LOG_LIMIT = 100

CLOCK_SKEW_AUDIT_NOTE = "check-out scan earlier than check-in; duration clamped to 0"
IMPROPER_CHECKOUT_WARNING = (
    "Some of your attendance time was not counted because the event was stopped "
    "while you were still checked in."
)
