# Demo workflow statuses
STATUS_SUBMITTED = "submitted"
STATUS_ASSISTANT_LIKED = "assistant_liked"
STATUS_REJECTED = "rejected"
STATUS_OWNER_LIKED = "owner_liked"

STATUSES = (
    STATUS_SUBMITTED,
    STATUS_ASSISTANT_LIKED,
    STATUS_REJECTED,
    STATUS_OWNER_LIKED,
)

# One Dropbox folder per status
STATUS_FOLDERS = {
    STATUS_SUBMITTED: "/demos/submitted",
    STATUS_ASSISTANT_LIKED: "/demos/assistant_liked",
    STATUS_REJECTED: "/demos/rejected",
    STATUS_OWNER_LIKED: "/demos/owner_liked",
}

AUDIO_EXTENSIONS = (".mp3", ".wav")
METADATA_SUFFIX = ".metadata.json"

# Registry documents
ARTISTS_FILE_PATH = "/artists/artist_urls.json"
EVENTS_FILE_PATH = "/events/events.json"

# Cache keys
CACHE_KEY_DEMOS = "demos:cache"
CACHE_KEY_DROPBOX_TOKEN = "dropbox:access_token"
CACHE_KEY_DEMO_SUBMISSION_ENABLED = "settings:demo_submission_enabled"
CACHE_KEY_SESSION_PREFIX = "session:"

# Cache TTLs in seconds
DEMOS_CACHE_TTL = 15 * 60
DROPBOX_TOKEN_TTL = int(3.5 * 60 * 60)
SESSION_CACHE_TTL = 5 * 60

DEMOS_CACHE_VERSION = 1
SUBMITTED_AT_FORMAT = "%Y%m%d_%H%M%S"

# Rejected folder sweep
CLEANUP_INTERVAL_SECONDS = 24 * 60 * 60
MAX_ERROR_DETAILS = 20
MAX_DEBUG_FILE_LOGS = 30

# Roles
ROLE_ASSISTANT = "assistant"
ROLE_OWNER = "owner"

# Review actions
ACTION_LIKE = "like"
ACTION_REJECT = "reject"
ACTION_UNDO_REJECT = "undo_reject"
ACTION_APPROVE = "approve"

# Notification emails
NOTIFICATION_LIKED = "liked"
NOTIFICATION_REJECTED = "rejected"
