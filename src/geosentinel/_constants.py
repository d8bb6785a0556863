"""Internal constants shared across the library."""

BASE_URL = "https://backend-1-opx1.onrender.com"
USER_AGENT = "GeoSentinelService/0.3"

LOGIN_ENDPOINT = "/api/auth/auto-login"
LOCATION_UPDATE_ENDPOINT = "/api/location/update"
LOCATION_BATCH_ENDPOINT = "/api/location/batch"
HEARTBEAT_ENDPOINT = "/api/heartbeat"
CLIENT_LOG_ENDPOINT = "/api/client-log"

#: HTTP statuses the backend uses for a missing, expired or revoked token.
UNAUTHORIZED_STATUSES: frozenset[int] = frozenset({401, 403})

DEFAULT_REQUEST_TIMEOUT: float = 15.0
DEFAULT_BATCH_SIZE = 20
DEFAULT_BASE_DELAY_MS = 10_000
DEFAULT_MAX_DELAY_MS = 60_000

DB_FILENAME = "local.db"
STATION_FILENAME = "config.json"
