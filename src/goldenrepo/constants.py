"""Static defaults shared across golden-repo-sync."""

PLATFORM_API_URL = "https://api.nullplatform.com"
GITHUB_API_URL = "https://api.github.com"
GITHUB_HOST = "github.com"
SECRET_ID_PREFIX = "null-platform/golden-repos/gh-orgs/"

NP_BINARY = "np"
GIT_USER_NAME = "null-platform-agent"
GIT_USER_EMAIL = "agent@null-platform.com"

METADATA_FILENAME = "metadata.json"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# GitHub rejects app JWTs that live longer than ten minutes.
JWT_TTL_SECONDS = 540

APP_PREFIX = "APP_"
NOTIFICATION_PREFIX = "NOTIFICATION_"
NRN_APPLICATION_DELIMITER = "application="
NRN_SEGMENT_SEPARATOR = ":"

PRIVATE_KEY_MODE = 0o600
