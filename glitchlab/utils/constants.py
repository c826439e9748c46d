"""Common constants."""

# Supported email languages
EMAIL_LANGUAGES = ["en", "it"]
DEFAULT_LANGUAGE = "en"

# Workshop statuses (derived, never stored)
STATUS_FUTURE = "future"
STATUS_ONGOING = "ongoing"
STATUS_PAST = "past"
STATUS_CANCELED = "canceled"
WORKSHOP_STATUSES = [STATUS_FUTURE, STATUS_ONGOING, STATUS_PAST, STATUS_CANCELED]

# Workshop facets
AGE_RANGES = ["6-8", "9-11", "12-13", "14-16", "16+"]
CLASS_TYPES = ["in-class", "out-of-class"]
SUBJECTS = ["design", "test", "code"]
TECH_TYPES = ["plug", "unplug"]

# Notification types
NOTIFICATION_WORKSHOP_REMOVAL = "workshop_removal"
NOTIFICATION_BADGE_AWARDED = "badge_awarded"
NOTIFICATION_GENERAL = "general"

UNKNOWN_WORKSHOP = "Unknown Workshop"
