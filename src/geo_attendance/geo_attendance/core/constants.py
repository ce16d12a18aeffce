"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

EARTH_RADIUS_METERS = 6_371_000.0
DEFAULT_RADIUS_METERS = 50.0

# A class active-session marker whose session never got written is
# considered abandoned after this many seconds.
ABANDONED_SLOT_SECONDS = 300

# Document store collections.
SESSIONS_COLLECTION = "sessions"
ATTENDANCE_COLLECTION = "attendance"
VERIFICATION_REQUESTS_COLLECTION = "verification_requests"
CLASS_ACTIVE_SESSIONS_COLLECTION = "class_active_sessions"
CLASSES_COLLECTION = "classes"
ENROLLMENTS_COLLECTION = "enrollments"
