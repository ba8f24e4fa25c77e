"""Application-wide constants.

This module defines constants used throughout the application
to avoid magic numbers and ensure consistency.
"""

# String field lengths
MAX_NAME_LENGTH = 255
MAX_SECRET_LENGTH = 32
MAX_TITLE_LENGTH = 255
MAX_RECORD_ID_LENGTH = 64
MAX_STATUS_LENGTH = 32
MAX_PLATFORM_LENGTH = 50

# Write queue
DEFAULT_QUIET_PERIOD_MS = 500

# Media
DEFAULT_MAX_MEDIA_BYTES = 2 * 1024 * 1024
DATA_URL_PREFIX = "data:"

# Captions
DEFAULT_MAX_HASHTAGS = 5
MAX_GENERATED_RECORDS = 30
MAX_GENERATION_SPACING_DAYS = 7
HASHTAG_MARKER = "#"

# Sessions
SESSION_ID_BYTES = 32
SESSION_HEADER = "X-Session-ID"
MAX_NOTICES_PER_SESSION = 100
DEFAULT_SESSION_IDLE_SECONDS = 15 * 60
DEFAULT_SESSION_SWEEP_SECONDS = 60

# Email tokens are treated as expired this long before their real expiry
EMAIL_TOKEN_EXPIRY_BUFFER_SECONDS = 300
