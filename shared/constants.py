"""
Shared Constants - Single Source of Truth

Static data used by the detection engine and the reporters:
extraction rule table, forced-leak targets, timing defaults and
user-facing texts.

Usage:
    from shared.constants import GOOGLE_ID_PATTERNS, GOOGLE_KEEP_TARGET
"""

from enum import Enum


# ==================== BROWSER ENGINES ====================
class BrowserEngines(str, Enum):
    WEBKIT = "webkit"  # The databases() enumeration leak is a WebKit behaviour
    CHROMIUM = "chromium"
    FIREFOX = "firefox"


# ==================== EXTRACTION RULES ====================
# (pattern, capture group, service the storage belongs to)
# Patterns are matched with search semantics against database names.
GOOGLE_ID_PATTERNS = [
    (r"offline.settings.(\d+)", 1, "calendar.google.com"),
    (r"offline.requests.(\d+)", 1, "calendar.google.com"),
    (r"Keep-(\d+)", 1, "keep.google.com"),
    (r"LogsDatabaseV2:(\d+)\|\|", 1, "youtube.com"),
    (r"PersistentEntityStoreDb:(\d+)\|\|", 1, "youtube.com"),
    (r"yt-idb-pref-storage:(\d+)\|\|", 1, "youtube.com"),
    (r"yt-it-response-store:(\d+)\|\|", 1, "youtube.com"),
    (r"yt-player-local-media:(\d+)\|\|", 1, "youtube.com"),
]


# ==================== FORCED LEAK TARGETS ====================
# Opening the target in a background window makes the service create
# a database whose name starts with ``prefix`` followed by the user ID.
GOOGLE_KEEP_TARGET = {
    "name": "google_keep",
    "url": "https://keep.google.com/u/0/",
    "prefix": "Keep-",
    "separator": "-",
}

FORCE_TARGETS = {
    GOOGLE_KEEP_TARGET["name"]: GOOGLE_KEEP_TARGET,
}

DEFAULT_FORCE_TARGET = GOOGLE_KEEP_TARGET["name"]

# Tiny off-screen window so the forced session stays out of the way
POPUP_WINDOW_FEATURES = "width=50,height=50,left=9999,top=9999"


# ==================== TIMING ====================
DEFAULT_POLL_INTERVAL_MS = 80
DEFAULT_FORCE_TIMEOUT_MS = 3000  # Slow connections need a few seconds to load the target


# ==================== TEXTS ====================
GOOGLE_ID_TOOLTIP_TEXT = (
    "The Google User ID is an internal identifier generated by Google. It uniquely "
    "identifies a single Google account. It can be used with Google APIs to fetch public "
    "personal information of the account owner. The information exposed by these APIs is "
    "controlled by many factors. In general, at minimum the user's profile picture is "
    "typically available."
)

STATUS_MESSAGES = {
    "loading": "Looking for Google User IDs...",
    "not_logged_in": "You are not logged in with any Google account. Try again with --force.",
    "identifiers_found": "Your unique Google User ID{plural}:",
    "not_tested": "You can also test for Google User ID leaks. Try it with --force.",
}
